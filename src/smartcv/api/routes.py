from __future__ import annotations

import base64
import binascii
import json
import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from smartcv.api.deps import get_context, get_orchestrator
from smartcv.api.schemas import PaystackEvent, TelegramUpdate, WebhookAck, WhatsAppMessage, WhatsAppWebhook
from smartcv.core.orchestrator import APOLOGY, UNSUPPORTED_MESSAGE, ConversationOrchestrator
from smartcv.core.runtime import AppContext
from smartcv.errors import ChannelError, FileTooLarge
from smartcv.payments.paystack import verify_webhook_signature
from smartcv.types import InboundFile

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks"])

INVALID_DOCUMENT = "Invalid document. Please send a valid PDF or DOCX file."


def whatsapp_identifier(sender: str) -> str:
    number = sender.split("@", 1)[0].strip()
    return number if number.startswith("+") else f"+{number}"


def _reply_safely(context: AppContext, identifier: str, text: str) -> None:
    try:
        context.notifier.send(identifier, text)
    except ChannelError as exc:
        logger.error("Failed to send message identifier=%s error=%s", identifier, exc)


def _handle_whatsapp_message(
    message: WhatsAppMessage,
    context: AppContext,
    orchestrator: ConversationOrchestrator,
) -> None:
    identifier = whatsapp_identifier(message.sender)
    if message.type == "text":
        orchestrator.handle_message(identifier, message.body)
        return

    if message.type != "document":
        _reply_safely(context, identifier, UNSUPPORTED_MESSAGE)
        return

    document = message.document
    if document is None or not document.data or not document.filename:
        _reply_safely(context, identifier, INVALID_DOCUMENT)
        return
    try:
        content = base64.b64decode(document.data, validate=True)
    except (binascii.Error, ValueError):
        _reply_safely(context, identifier, INVALID_DOCUMENT)
        return

    orchestrator.handle_message(
        identifier,
        None,
        InboundFile(content=content, filename=document.filename, declared_email=message.from_email),
    )


@router.post("/webhook/whatsapp", response_model=WebhookAck)
def whatsapp_webhook(
    payload: WhatsAppWebhook,
    context: AppContext = Depends(get_context),
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
) -> WebhookAck:
    processed = 0
    for message in payload.messages:
        try:
            _handle_whatsapp_message(message, context, orchestrator)
            processed += 1
        except Exception:
            logger.exception(
                "Error processing WhatsApp message type=%s from=%s",
                message.type,
                message.sender,
            )
            _reply_safely(context, whatsapp_identifier(message.sender), APOLOGY)
    return WebhookAck(processed=processed)


@router.post("/webhook/telegram", response_model=WebhookAck)
def telegram_webhook(
    update: TelegramUpdate,
    context: AppContext = Depends(get_context),
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
    secret_token: str | None = Header(default=None, alias="X-Telegram-Bot-Api-Secret-Token"),
) -> WebhookAck:
    expected = context.settings.telegram_webhook_secret
    if expected and secret_token != expected:
        raise HTTPException(status_code=401, detail="Invalid secret token")

    message = update.message
    if message is None:
        return WebhookAck(processed=0)

    identifier = str(message.chat.id)
    try:
        if message.document is not None:
            size = message.document.file_size or 0
            if size > context.settings.max_cv_bytes:
                _reply_safely(context, identifier, FileTooLarge.user_message)
                return WebhookAck(processed=1)

            telegram = context.channels.get("telegram")
            if telegram is None:
                raise ChannelError("telegram", "channel is not configured")
            content = telegram.download_document(message.document.file_id)
            email = message.sender.email if message.sender else None
            orchestrator.handle_message(
                identifier,
                None,
                InboundFile(content=content, filename=message.document.file_name or "", declared_email=email),
            )
        elif message.text:
            orchestrator.handle_message(identifier, message.text)
        else:
            _reply_safely(context, identifier, UNSUPPORTED_MESSAGE)
    except Exception:
        logger.exception(
            "Telegram message processing error chat_id=%s type=%s",
            identifier,
            "document" if message.document else "text",
        )
        _reply_safely(context, identifier, APOLOGY)
        return WebhookAck(processed=0)
    return WebhookAck(processed=1)


@router.post("/webhook/paystack")
async def paystack_webhook(
    request: Request,
    signature: str | None = Header(default=None, alias="X-Paystack-Signature"),
) -> JSONResponse:
    context: AppContext = request.app.state.context
    orchestrator: ConversationOrchestrator = request.app.state.orchestrator

    body = await request.body()
    if not verify_webhook_signature(context.settings.paystack_secret_key, body, signature):
        logger.warning("Invalid Paystack webhook signature")
        return JSONResponse({"error": "Invalid signature"}, status_code=400)

    try:
        event = PaystackEvent.model_validate(json.loads(body))
    except ValueError:
        return JSONResponse({"error": "Invalid payload"}, status_code=400)

    reference = str(event.data.get("reference") or "")
    logger.info("Paystack webhook received event=%s reference=%s", event.event, reference)
    if event.event != "charge.success" or not reference:
        return JSONResponse({"status": "ignored"})

    try:
        confirmed = await run_in_threadpool(orchestrator.confirm_payment, reference)
    except Exception:
        logger.exception("Paystack webhook processing error reference=%s", reference)
        return JSONResponse({"error": "Webhook processing failed"}, status_code=500)
    return JSONResponse({"status": "ok", "confirmed": confirmed})


@router.get("/payment/callback")
def payment_callback(reference: str | None = None) -> JSONResponse:
    return JSONResponse(
        {
            "status": "received",
            "reference": reference,
            "message": "Thank you! Return to your chat to upload your CV once the payment is confirmed.",
        }
    )
