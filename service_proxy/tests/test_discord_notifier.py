"""
Unit tests for the Discord notifier.
"""

import json

import httpx
import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_proxy.app.adapters.discord_notifier import DiscordNotifier, EmbedColor
from shared.errors import NotificationError


WEBHOOK_URL = "https://discord.test/api/webhooks/123/abc"


class TestDiscordNotifier:
    """Test cases for DiscordNotifier."""

    @pytest.fixture
    def posted(self):
        return []

    @pytest.fixture
    def notifier(self, posted):
        def handler(request):
            posted.append(request)
            return httpx.Response(204)

        return DiscordNotifier(WEBHOOK_URL, transport=httpx.MockTransport(handler))

    def test_build_message(self):
        message = DiscordNotifier.build_message(
            "Request quota exhausted",
            "Request quota exhausted for request GET /rate_limit",
            {"method": "GET", "attempt": 0},
            EmbedColor.YELLOW,
        )

        assert message == {
            "embeds": [{
                "title": "Request quota exhausted",
                "description": "Request quota exhausted for request GET /rate_limit",
                "color": 16705372,
                "fields": [
                    {"name": "method", "value": "GET", "inline": True},
                    {"name": "attempt", "value": "0", "inline": True},
                ],
            }]
        }

    def test_build_message_without_color(self):
        message = DiscordNotifier.build_message("Title", "Description", {})

        assert "color" not in message["embeds"][0]
        assert message["embeds"][0]["fields"] == []

    @pytest.mark.asyncio
    async def test_warn_posts_yellow_embed(self, notifier, posted):
        await notifier.warn("Quota", "Exhausted", {"owner": "gobstones"})

        assert len(posted) == 1
        assert str(posted[0].url) == WEBHOOK_URL
        body = json.loads(posted[0].content)
        assert body["embeds"][0]["color"] == EmbedColor.YELLOW
        assert body["embeds"][0]["fields"] == [{"name": "owner", "value": "gobstones", "inline": True}]

    @pytest.mark.asyncio
    async def test_error_posts_red_embed(self, notifier, posted):
        await notifier.error("Abuse", "Detected")

        assert json.loads(posted[0].content)["embeds"][0]["color"] == EmbedColor.RED

    @pytest.mark.asyncio
    async def test_log_posts_plain_embed(self, notifier, posted):
        await notifier.log("Deploy", "Service started")

        assert "color" not in json.loads(posted[0].content)["embeds"][0]

    @pytest.mark.asyncio
    async def test_rejected_webhook_raises(self):
        notifier = DiscordNotifier(
            WEBHOOK_URL,
            transport=httpx.MockTransport(lambda request: httpx.Response(401, json={"message": "401: Unauthorized"})),
        )

        with pytest.raises(NotificationError) as exc_info:
            await notifier.warn("Quota", "Exhausted")

        assert exc_info.value.details["status_code"] == 401

    @pytest.mark.asyncio
    async def test_unreachable_webhook_raises(self):
        def handler(request):
            raise httpx.ConnectError("no route to host", request=request)

        notifier = DiscordNotifier(WEBHOOK_URL, transport=httpx.MockTransport(handler))

        with pytest.raises(NotificationError):
            await notifier.error("Abuse", "Detected")

    @pytest.mark.asyncio
    async def test_disabled_without_webhook(self):
        notifier = DiscordNotifier(None)

        assert notifier.enabled is False
        await notifier.warn("Quota", "Exhausted", {"method": "GET"})

    @pytest.mark.asyncio
    async def test_disabled_with_details_named_like_log_fields(self):
        notifier = DiscordNotifier(None)

        await notifier.error("Abuse", "Detected", {"title": "open", "details": "x"})
