from __future__ import annotations

import io
from collections.abc import Callable

import pytest
from docx import Document

from smartcv.config import Settings
from smartcv.core.orchestrator import ConversationOrchestrator
from smartcv.core.runtime import AppContext, build_context
from smartcv.db.base import Base
from smartcv.db.models import Job
from smartcv.errors import ChannelError, PaymentProviderError


class RecordingChannel:
    def __init__(self, name: str):
        self.name = name
        self.sent: list[tuple[str, str]] = []
        self.documents: dict[str, bytes] = {}
        self.fail = False

    def send_text(self, identifier: str, text: str) -> None:
        if self.fail:
            raise ChannelError(self.name, "provider unavailable")
        self.sent.append((identifier, text))

    def download_document(self, file_id: str) -> bytes:
        return self.documents[file_id]

    def texts_for(self, identifier: str) -> list[str]:
        return [text for to, text in self.sent if to == identifier]


class FakePaymentClient:
    def __init__(self) -> None:
        self.initialized: list[dict[str, str]] = []
        self.verify_result = True
        self.fail_initialize = False

    def initialize(self, identifier: str, reference: str, email: str) -> str:
        if self.fail_initialize:
            raise PaymentProviderError("checkout unavailable")
        self.initialized.append({"identifier": identifier, "reference": reference, "email": email})
        return f"https://checkout.test/{reference}"

    def verify(self, reference: str) -> bool:
        return self.verify_result

    def last_reference(self, identifier: str) -> str:
        return [item["reference"] for item in self.initialized if item["identifier"] == identifier][-1]


class FakeMailer:
    def __init__(self) -> None:
        self.sent: list[dict[str, str]] = []

    def notify_recruiter(self, **kwargs: str) -> bool:
        self.sent.append(kwargs)
        return True


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def settings() -> Settings:
    return Settings(
        app_env="test",
        database_url="sqlite://",
        openai_api_key="",
        local_llm_enabled=False,
        antivirus_enabled=False,
        task_workers=2,
        task_timeout_sec=10,
        paystack_secret_key="sk_test_secret",
        telegram_webhook_secret="",
        serialize_turns=True,
    )


@pytest.fixture
def channels() -> dict[str, RecordingChannel]:
    return {"whatsapp": RecordingChannel("whatsapp"), "telegram": RecordingChannel("telegram")}


@pytest.fixture
def payments() -> FakePaymentClient:
    return FakePaymentClient()


@pytest.fixture
def mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def context(settings, channels, payments, mailer, clock) -> AppContext:
    ctx = build_context(settings, channels=channels, payments=payments, mailer=mailer, clock=clock)
    Base.metadata.create_all(bind=ctx.engine)
    yield ctx
    ctx.close()


@pytest.fixture
def orchestrator(context: AppContext) -> ConversationOrchestrator:
    return ConversationOrchestrator(context)


@pytest.fixture
def add_job(context: AppContext) -> Callable[..., Job]:
    def _add(
        title: str = "Backend Engineer",
        company: str = "Paystack",
        location: str = "Lagos",
        is_remote: bool = False,
        email: str = "careers@example.com",
    ) -> Job:
        with context.repository() as repo:
            return repo.create_job(title=title, company=company, location=location, is_remote=is_remote, email=email)

    return _add


@pytest.fixture
def mark_paid(context: AppContext) -> Callable[[str], None]:
    def _mark(identifier: str) -> None:
        reference = f"seed_{identifier}"
        with context.repository() as repo:
            repo.upsert_pending_payment(identifier, reference)
            repo.mark_payment_completed(identifier, reference)

    return _mark


@pytest.fixture
def docx_bytes() -> Callable[[str], bytes]:
    def _build(*paragraphs: str) -> bytes:
        document = Document()
        for paragraph in paragraphs:
            document.add_paragraph(paragraph)
        buffer = io.BytesIO()
        document.save(buffer)
        return buffer.getvalue()

    return _build
