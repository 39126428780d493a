from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager, nullcontext
from dataclasses import dataclass, field
from typing import ContextManager

from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from smartcv.channels.base import ChannelClient
from smartcv.channels.telegram import TelegramClient
from smartcv.channels.whatsapp import WhatsAppClient
from smartcv.config import Settings, get_settings
from smartcv.core.cv_extraction import CVExtractor
from smartcv.core.notifications import Mailer, NotificationSink, RecruiterMailer
from smartcv.core.session_store import ExpiringStore, SessionStore
from smartcv.core.tasks import TaskOrchestrator
from smartcv.core.workers import register_workers
from smartcv.db.repositories import Repository
from smartcv.db.session import create_db_engine, create_session_factory
from smartcv.llm.router import LLMRouter
from smartcv.payments.paystack import PaymentClient, PaystackClient


class TurnLeases:
    """Per-identifier mutual exclusion held for the duration of one conversational turn."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._holders: dict[str, int] = {}

    @contextmanager
    def hold(self, identifier: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(identifier, threading.Lock())
            self._holders[identifier] = self._holders.get(identifier, 0) + 1

        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                self._holders[identifier] -= 1
                if self._holders[identifier] == 0:
                    del self._holders[identifier]
                    del self._locks[identifier]

    def __len__(self) -> int:
        return len(self._locks)


@dataclass
class AppContext:
    """Everything the engine shares across turns, built once at process start."""

    settings: Settings
    engine: Engine
    session_factory: sessionmaker[Session]
    store: SessionStore
    tasks: TaskOrchestrator
    notifier: NotificationSink
    mailer: Mailer
    payments: PaymentClient
    llm: LLMRouter
    extractor: CVExtractor
    channels: dict[str, ChannelClient] = field(default_factory=dict)
    leases: TurnLeases = field(default_factory=TurnLeases)

    @contextmanager
    def repository(self) -> Iterator[Repository]:
        with self.session_factory() as session:
            yield Repository(session)

    def turn_lease(self, identifier: str) -> ContextManager[None]:
        if not self.settings.serialize_turns:
            return nullcontext()
        return self.leases.hold(identifier)

    def start(self) -> None:
        self.tasks.start()

    def close(self) -> None:
        self.tasks.shutdown()
        self.engine.dispose()


def build_context(
    settings: Settings | None = None,
    *,
    channels: dict[str, ChannelClient] | None = None,
    payments: PaymentClient | None = None,
    mailer: Mailer | None = None,
    llm: LLMRouter | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> AppContext:
    settings = settings or get_settings()
    engine = create_db_engine(settings)

    if channels is None:
        channels = {
            "whatsapp": WhatsAppClient.from_settings(settings),
            "telegram": TelegramClient.from_settings(settings),
        }

    llm = llm or LLMRouter(settings)
    extractor = CVExtractor.from_settings(settings)
    tasks = TaskOrchestrator(max_workers=settings.task_workers, timeout_sec=settings.task_timeout_sec)
    register_workers(tasks, extractor=extractor, llm=llm)

    return AppContext(
        settings=settings,
        engine=engine,
        session_factory=create_session_factory(engine),
        store=SessionStore(
            ExpiringStore(clock=clock),
            session_ttl_sec=settings.session_ttl_sec,
            search_ttl_sec=settings.search_cache_ttl_sec,
        ),
        tasks=tasks,
        notifier=NotificationSink(channels),
        mailer=mailer or RecruiterMailer.from_settings(settings),
        payments=payments or PaystackClient.from_settings(settings),
        llm=llm,
        extractor=extractor,
        channels=channels,
    )
