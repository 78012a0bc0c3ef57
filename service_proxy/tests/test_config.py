"""
Unit tests for proxy configuration.
"""

import pytest
from pydantic import ValidationError

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from shared.config import DEFAULT_MAX_CACHE_SIZE_BYTES, get_config


class TestConfig:
    """Test cases for ServiceConfig."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("PROXY_MAX_CACHE_SIZE_BYTES", raising=False)
        config = get_config("proxy")

        assert config.service_name == "proxy"
        assert config.max_cache_size_bytes == DEFAULT_MAX_CACHE_SIZE_BYTES
        assert config.port == 3000

    def test_reads_prefixed_environment(self, monkeypatch):
        monkeypatch.setenv("PROXY_MAX_CACHE_SIZE_BYTES", "5000")
        monkeypatch.setenv("PROXY_ISSUES_REPOSITORY", "gobstones/bug-reports")

        config = get_config("proxy")

        assert config.max_cache_size_bytes == 5000
        assert config.issues_repository == "gobstones/bug-reports"

    def test_rejects_non_positive_budget(self):
        with pytest.raises(ValidationError):
            get_config("proxy", max_cache_size_bytes=0)

    def test_webhook_url(self):
        config = get_config("proxy", discord_webhook_id="123", discord_webhook_token="abc")

        assert config.discord_webhook_url == "https://discord.com/api/webhooks/123/abc"

    def test_webhook_url_requires_both_parts(self):
        assert get_config("proxy", discord_webhook_id="123", discord_webhook_token=None).discord_webhook_url is None
