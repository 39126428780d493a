from __future__ import annotations

import logging

from smartcv.core.ai import AIAssistant
from smartcv.core.intent_router import IntentRouter
from smartcv.core.payment_gate import PaymentGate
from smartcv.core.runtime import AppContext
from smartcv.core.session_store import AWAITING_COVER_LETTER, CV_TEXT, EMAIL
from smartcv.core.workers import EXTRACT_CV
from smartcv.errors import (
    FileTooLarge,
    PaymentProviderError,
    TaskError,
    TaskFailed,
    TaskTimeout,
    UploadValidationError,
)
from smartcv.types import InboundFile

logger = logging.getLogger(__name__)

APOLOGY = "Sorry, an error occurred. Please try again."
STILL_WORKING = "Still working on your request. Please try again shortly."
PAYMENT_RETRY = "We could not start your payment right now. Please try again in a few minutes."
UNSUPPORTED_MESSAGE = "I can only process text messages and document files (PDF/DOCX)."
CV_UPLOADED = 'CV uploaded successfully! Please provide a cover letter for your application or reply "generate" to create one.'


class ConversationOrchestrator:
    """Runs one inbound message (a turn) to completion and delivers the reply on the sender's channel."""

    def __init__(self, context: AppContext):
        self.context = context
        self.store = context.store
        self.payments = PaymentGate(context)
        self.ai = AIAssistant(context.tasks)
        self.router = IntentRouter(context, payments=self.payments, ai=self.ai)

    def handle_message(self, identifier: str, text: str | None = None, file: InboundFile | None = None) -> str:
        kind = "document" if file is not None else "text"
        with self.context.turn_lease(identifier):
            reply = self._run_turn(identifier, text, file, kind)
        return self.context.notifier.send(identifier, reply)

    def confirm_payment(self, reference: str) -> bool:
        return self.payments.confirm(reference)

    def _run_turn(self, identifier: str, text: str | None, file: InboundFile | None, kind: str) -> str:
        try:
            return self.process(identifier, text, file)
        except UploadValidationError as exc:
            logger.info("Upload rejected identifier=%s reason=%s", identifier, exc)
            return exc.user_message
        except TaskTimeout as exc:
            logger.warning("Turn timed out identifier=%s kind=%s task=%s", identifier, kind, exc.task_name)
            return STILL_WORKING
        except TaskFailed as exc:
            if isinstance(exc.cause, UploadValidationError):
                logger.info("Upload rejected identifier=%s reason=%s", identifier, exc.cause)
                return exc.cause.user_message
            logger.error(
                "Task failed identifier=%s kind=%s task=%s cause=%r",
                identifier,
                kind,
                exc.task_name,
                exc.cause,
            )
            return APOLOGY
        except TaskError as exc:
            logger.error("Task error identifier=%s kind=%s error=%s", identifier, kind, exc)
            return APOLOGY
        except PaymentProviderError as exc:
            logger.error("Payment provider error identifier=%s kind=%s error=%s", identifier, kind, exc)
            return PAYMENT_RETRY
        except Exception:
            logger.exception("Message processing error identifier=%s kind=%s", identifier, kind)
            return APOLOGY

    def process(self, identifier: str, text: str | None, file: InboundFile | None) -> str:
        if file is not None:
            return self.handle_upload(identifier, file)

        if not text or not text.strip():
            return UNSUPPORTED_MESSAGE

        if self.store.get_state(identifier) == AWAITING_COVER_LETTER:
            return self.router.handle_cover_letter(identifier, text)

        intent = self.ai.parse_intent(text, identifier=identifier)
        logger.info("Intent identifier=%s action=%s", identifier, intent.action)
        return self.router.route(identifier, intent)

    def handle_upload(self, identifier: str, file: InboundFile) -> str:
        if not self.payments.is_paid(identifier):
            url = self.payments.initiate(identifier)
            return self.payments.payment_prompt(url, "before uploading your CV")

        limit = self.context.settings.max_cv_bytes
        if file.size > limit:
            raise FileTooLarge(file.size, limit)

        cv_text = self.context.tasks.run(
            EXTRACT_CV,
            {"content": file.content, "identifier": identifier, "filename": file.filename},
            identifier=identifier,
        )

        email = file.declared_email or self.payments.resolve_email(identifier)
        self.store.set(identifier, CV_TEXT, cv_text)
        self.store.set(identifier, EMAIL, email)
        self.store.set_state(identifier, AWAITING_COVER_LETTER)
        logger.info("CV stored identifier=%s chars=%s", identifier, len(cv_text))
        return CV_UPLOADED
