from __future__ import annotations

import logging

import requests

from smartcv.config import Settings
from smartcv.errors import ChannelError

logger = logging.getLogger(__name__)


class WhatsAppClient:
    """Outbound messages through the Whapi gateway."""

    name = "whatsapp"

    def __init__(self, *, token: str, api_url: str, timeout_sec: int = 15):
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.timeout_sec = timeout_sec

    @classmethod
    def from_settings(cls, settings: Settings) -> WhatsAppClient:
        return cls(
            token=settings.whatsapp_token,
            api_url=settings.whatsapp_api_url,
            timeout_sec=settings.channel_timeout_sec,
        )

    @property
    def configured(self) -> bool:
        return bool(self.token)

    def send_text(self, identifier: str, text: str) -> None:
        if not self.configured:
            raise ChannelError(self.name, "no API token configured")

        try:
            response = requests.post(
                f"{self.api_url}/messages/text",
                json={"to": identifier.lstrip("+"), "body": text},
                headers={"Authorization": f"Bearer {self.token}"},
                timeout=self.timeout_sec,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.error("WhatsApp message failed identifier=%s error=%s", identifier, exc)
            raise ChannelError(self.name, str(exc)) from exc
