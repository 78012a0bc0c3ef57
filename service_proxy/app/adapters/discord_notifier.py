"""
Discord webhook notifier for operational events.
"""

from enum import IntEnum
from typing import Any, Dict, List, Optional

import httpx

from shared.errors import NotificationError
from shared.logging import get_logger


class EmbedColor(IntEnum):
    """Discord embed colors by severity."""
    GREEN = 5763719
    RED = 15548997
    YELLOW = 16705372


class DiscordNotifier:
    """Posts embeds to a Discord webhook.

    When no webhook URL is configured the notifier only logs.
    """

    def __init__(
        self,
        webhook_url: Optional[str],
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.webhook_url = webhook_url
        self.timeout = timeout
        self.transport = transport
        self.logger = get_logger("proxy.discord_notifier")

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    async def log(self, title: str, description: str, details: Optional[Dict[str, Any]] = None) -> None:
        await self._send(title, description, details or {}, None)

    async def warn(self, title: str, description: str, details: Optional[Dict[str, Any]] = None) -> None:
        await self._send(title, description, details or {}, EmbedColor.YELLOW)

    async def error(self, title: str, description: str, details: Optional[Dict[str, Any]] = None) -> None:
        await self._send(title, description, details or {}, EmbedColor.RED)

    async def _send(
        self,
        title: str,
        description: str,
        details: Dict[str, Any],
        color: Optional[EmbedColor],
    ) -> None:
        if not self.enabled:
            self.logger.info("Notification skipped, webhook not configured", title=title, details=details)
            return

        message = self.build_message(title, description, details, color)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.webhook_url, json=message)
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise NotificationError(
                "Discord rejected the notification, check the webhook credentials",
                details={"status_code": exc.response.status_code, "error": str(exc)}
            ) from exc
        except httpx.HTTPError as exc:
            raise NotificationError(
                "Discord webhook unreachable",
                details={"error": str(exc)}
            ) from exc

    @staticmethod
    def build_message(
        title: str,
        description: str,
        details: Dict[str, Any],
        color: Optional[EmbedColor] = None,
    ) -> Dict[str, List[Dict[str, Any]]]:
        """Build the webhook payload: one embed with a field per detail."""
        embed: Dict[str, Any] = {
            "title": title,
            "description": description,
            "fields": [
                {"name": name, "value": str(value), "inline": True}
                for name, value in details.items()
            ],
        }
        if color is not None:
            embed["color"] = int(color)
        return {"embeds": [embed]}
