from __future__ import annotations

import logging

import requests

from smartcv.config import Settings
from smartcv.errors import ChannelError

logger = logging.getLogger(__name__)


class TelegramClient:
    """Bot API client: outbound text plus document download for inbound uploads."""

    name = "telegram"

    def __init__(self, *, token: str, api_url: str, timeout_sec: int = 15):
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.timeout_sec = timeout_sec

    @classmethod
    def from_settings(cls, settings: Settings) -> TelegramClient:
        return cls(
            token=settings.telegram_token,
            api_url=settings.telegram_api_url,
            timeout_sec=settings.channel_timeout_sec,
        )

    @property
    def configured(self) -> bool:
        return bool(self.token.strip()) and self.token != "your-telegram-token"

    def send_text(self, identifier: str, text: str) -> None:
        self._call("sendMessage", {"chat_id": identifier, "text": text})

    def download_document(self, file_id: str) -> bytes:
        result = self._call("getFile", {"file_id": file_id})
        file_path = result.get("file_path") if isinstance(result, dict) else None
        if not file_path:
            raise ChannelError(self.name, f"no file_path returned for file_id={file_id}")

        try:
            response = requests.get(
                f"{self.api_url}/file/bot{self.token}/{file_path}",
                timeout=self.timeout_sec,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.error("Telegram file download failed file_id=%s", file_id)
            raise ChannelError(self.name, "file download failed") from exc
        return response.content

    def _call(self, method: str, payload: dict) -> dict:
        if not self.configured:
            raise ChannelError(self.name, "no bot token configured")

        try:
            response = requests.post(
                f"{self.api_url}/bot{self.token}/{method}",
                json=payload,
                timeout=self.timeout_sec,
            )
            response.raise_for_status()
            body = response.json()
        except (requests.RequestException, ValueError) as exc:
            # the request URL embeds the token, so only the method is logged
            logger.error("Telegram %s failed payload_keys=%s", method, sorted(payload))
            raise ChannelError(self.name, f"{method} failed") from exc

        if not body.get("ok"):
            raise ChannelError(self.name, f"{method} rejected: {body.get('description', 'unknown error')}")
        return body.get("result") or {}
