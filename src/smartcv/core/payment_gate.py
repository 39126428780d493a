from __future__ import annotations

import logging
import uuid

from smartcv.core.runtime import AppContext
from smartcv.core.session_store import EMAIL
from smartcv.errors import ChannelError

logger = logging.getLogger(__name__)

PAYMENT_FAILED = "Payment failed. Please try again."
PAYMENT_UNMATCHED = (
    "We received a payment from an expired checkout link and could not match it to your account. "
    "Please contact support with your payment receipt, or request a new link and try again."
)


def make_reference(identifier: str) -> str:
    return f"{uuid.uuid4().hex}_{identifier}"


def identifier_from_reference(reference: str) -> str | None:
    _, sep, identifier = reference.partition("_")
    if not sep or not identifier:
        return None
    return identifier


class PaymentGate:
    """Payment state lives in the relational store; the session store only supplies the email."""

    def __init__(self, context: AppContext):
        self.context = context

    def check_status(self, identifier: str) -> str:
        with self.context.repository() as repo:
            return repo.get_payment_status(identifier)

    def is_paid(self, identifier: str) -> bool:
        return self.check_status(identifier) == "completed"

    def resolve_email(self, identifier: str) -> str:
        cached = self.context.store.get(identifier, EMAIL)
        if cached:
            return cached
        return f"{identifier.lstrip('+')}@{self.context.settings.placeholder_email_domain}"

    def initiate(self, identifier: str) -> str:
        email = self.resolve_email(identifier)
        reference = make_reference(identifier)
        with self.context.repository() as repo:
            repo.upsert_pending_payment(identifier, reference)

        url = self.context.payments.initialize(identifier, reference, email)
        logger.info("Payment initiated identifier=%s reference=%s", identifier, reference)
        return url

    def payment_prompt(self, url: str, purpose: str) -> str:
        return f"Please complete the payment of {self.context.settings.payment_amount_display} {purpose}: {url}"

    def confirm(self, reference: str) -> bool:
        identifier = identifier_from_reference(reference)
        if identifier is None:
            logger.warning("Ignoring payment reference without identifier suffix: %s", reference)
            return False

        if not self.context.payments.verify(reference):
            logger.warning("Payment verification failed identifier=%s reference=%s", identifier, reference)
            self._notify(identifier, PAYMENT_FAILED)
            return False

        with self.context.repository() as repo:
            payment = repo.get_payment(identifier)
            if payment is None:
                logger.warning("No payment row for identifier=%s reference=%s", identifier, reference)
                return False
            if payment.payment_status == "completed":
                logger.info("Duplicate payment confirmation identifier=%s reference=%s", identifier, reference)
                return True
            updated = repo.mark_payment_completed(identifier, reference)

        if not updated:
            logger.error(
                "Verified payment does not match the current checkout identifier=%s reference=%s",
                identifier,
                reference,
            )
            self._notify(identifier, PAYMENT_UNMATCHED)
            return False

        logger.info("Payment completed identifier=%s reference=%s", identifier, reference)
        pending = self.context.store.get_pending_jobs(identifier)
        hint = " to proceed with your application(s)" if pending else " to apply for jobs"
        self._notify(
            identifier,
            f"Payment successful! Please upload your CV (PDF or DOCX, max 5MB) in this chat{hint}.",
        )
        return True

    def _notify(self, identifier: str, text: str) -> None:
        # payment state is already persisted; a delivery failure must not undo it
        try:
            self.context.notifier.send(identifier, text)
        except ChannelError as exc:
            logger.error("Payment notification failed identifier=%s error=%s", identifier, exc)
