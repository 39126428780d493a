from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Protocol

import requests

from smartcv.config import Settings
from smartcv.errors import PaymentProviderError

logger = logging.getLogger(__name__)


class PaymentClient(Protocol):
    def initialize(self, identifier: str, reference: str, email: str) -> str: ...

    def verify(self, reference: str) -> bool: ...


class PaystackClient:
    def __init__(
        self,
        *,
        secret_key: str,
        amount: int,
        callback_url: str,
        api_url: str = "https://api.paystack.co",
        timeout_sec: int = 20,
    ):
        self.secret_key = secret_key
        self.amount = amount
        self.callback_url = callback_url
        self.api_url = api_url.rstrip("/")
        self.timeout_sec = timeout_sec

    @classmethod
    def from_settings(cls, settings: Settings) -> PaystackClient:
        return cls(
            secret_key=settings.paystack_secret_key,
            amount=settings.paystack_amount,
            callback_url=f"{settings.base_url.rstrip('/')}/payment/callback",
            api_url=settings.paystack_api_url,
            timeout_sec=settings.paystack_timeout_sec,
        )

    @property
    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.secret_key}",
            "Content-Type": "application/json",
        }

    def initialize(self, identifier: str, reference: str, email: str) -> str:
        try:
            response = requests.post(
                f"{self.api_url}/transaction/initialize",
                json={
                    "email": email,
                    "amount": self.amount,
                    "reference": reference,
                    "callback_url": self.callback_url,
                    "metadata": {"identifier": identifier},
                },
                headers=self._headers,
                timeout=self.timeout_sec,
            )
            response.raise_for_status()
            url = response.json()["data"]["authorization_url"]
        except (requests.RequestException, ValueError, KeyError, TypeError) as exc:
            logger.error("Paystack initialization error reference=%s error=%s", reference, exc)
            raise PaymentProviderError(f"could not initialize payment {reference}") from exc
        return str(url)

    def verify(self, reference: str) -> bool:
        try:
            response = requests.get(
                f"{self.api_url}/transaction/verify/{reference}",
                headers=self._headers,
                timeout=self.timeout_sec,
            )
            response.raise_for_status()
            status = response.json()["data"]["status"]
        except (requests.RequestException, ValueError, KeyError, TypeError) as exc:
            logger.error("Paystack verification error reference=%s error=%s", reference, exc)
            return False
        return status == "success"


def verify_webhook_signature(secret_key: str, body: bytes, signature: str | None) -> bool:
    """Paystack signs the raw request body with HMAC-SHA512 keyed by the secret key."""
    if not signature or not secret_key:
        return False
    expected = hmac.new(secret_key.encode("utf-8"), body, hashlib.sha512).hexdigest()
    return hmac.compare_digest(expected, signature)
