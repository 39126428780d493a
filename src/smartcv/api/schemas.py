from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class WhatsAppDocument(BaseModel):
    data: str | None = None
    filename: str | None = None


class WhatsAppMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str = "text"
    sender: str = Field(alias="from")
    body: str | None = None
    document: WhatsAppDocument | None = None
    from_email: str | None = None


class WhatsAppWebhook(BaseModel):
    messages: list[WhatsAppMessage]


class TelegramChat(BaseModel):
    id: int | str


class TelegramUser(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int | str | None = None
    email: str | None = None


class TelegramDocument(BaseModel):
    model_config = ConfigDict(extra="ignore")

    file_id: str
    file_name: str | None = None
    file_size: int | None = None


class TelegramMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    chat: TelegramChat
    sender: TelegramUser | None = Field(default=None, alias="from")
    text: str | None = None
    document: TelegramDocument | None = None


class TelegramUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    update_id: int | None = None
    message: TelegramMessage | None = None


class PaystackEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    event: str
    data: dict[str, Any] = Field(default_factory=dict)


class WebhookAck(BaseModel):
    status: str = "ok"
    processed: int = 0
