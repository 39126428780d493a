from __future__ import annotations

import contextvars
import itertools
import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal

from smartcv.errors import TaskFailed, TaskTimeout, UnknownTask

logger = logging.getLogger(__name__)

TaskStatus = Literal["queued", "running", "completed", "failed"]
TaskHandler = Callable[[dict[str, Any]], Any]


@dataclass(slots=True)
class TaskRecord:
    id: int
    name: str
    identifier: str | None
    status: TaskStatus = "queued"
    error: str = ""
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    finished_at: datetime | None = None


class TaskOrchestrator:
    """Runs named units of work on a worker pool and blocks the caller until each finishes.

    Every call to ``run`` submits exactly one unit. The caller waits on that unit's
    future only, so a slow task stalls the submitting turn and nothing else.
    """

    def __init__(self, *, max_workers: int = 4, timeout_sec: float | None = None):
        self.max_workers = max_workers
        self.timeout_sec = timeout_sec
        self._handlers: dict[str, TaskHandler] = {}
        self._executor: ThreadPoolExecutor | None = None
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def register(self, name: str, handler: TaskHandler) -> None:
        self._handlers[name] = handler

    @property
    def task_names(self) -> list[str]:
        return sorted(self._handlers)

    def start(self) -> None:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.max_workers,
                    thread_name_prefix="smartcv-task",
                )
                logger.info("Task workers started count=%s", self.max_workers)

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=wait, cancel_futures=True)
            logger.info("Task workers stopped")

    def submit(self, name: str, payload: dict[str, Any], *, identifier: str | None = None) -> tuple[TaskRecord, Future]:
        handler = self._handlers.get(name)
        if handler is None:
            raise UnknownTask(name)

        self.start()
        record = TaskRecord(id=next(self._ids), name=name, identifier=identifier)
        assert self._executor is not None
        # handlers run inside the submitter's contextvars (request id)
        context = contextvars.copy_context()
        future = self._executor.submit(context.run, self._execute, record, handler, payload)
        logger.debug("Task queued id=%s name=%s identifier=%s", record.id, name, identifier)
        return record, future

    def run(
        self,
        name: str,
        payload: dict[str, Any],
        *,
        identifier: str | None = None,
        timeout_sec: float | None = None,
    ) -> Any:
        record, future = self.submit(name, payload, identifier=identifier)
        timeout = timeout_sec if timeout_sec is not None else self.timeout_sec
        try:
            return future.result(timeout=timeout)
        except FutureTimeout as exc:
            # a unit that already started keeps running and its result is dropped
            future.cancel()
            logger.warning(
                "Task timed out id=%s name=%s identifier=%s status=%s",
                record.id,
                name,
                identifier,
                record.status,
            )
            raise TaskTimeout(name, timeout or 0) from exc
        except Exception as exc:
            raise TaskFailed(name, exc) from exc

    @staticmethod
    def _execute(record: TaskRecord, handler: TaskHandler, payload: dict[str, Any]) -> Any:
        record.status = "running"
        logger.info("Task running id=%s name=%s identifier=%s", record.id, record.name, record.identifier)
        try:
            result = handler(payload)
        except Exception as exc:
            record.status = "failed"
            record.error = str(exc)
            record.finished_at = datetime.now(UTC)
            logger.error(
                "Task failed id=%s name=%s identifier=%s error=%s",
                record.id,
                record.name,
                record.identifier,
                exc,
            )
            raise

        record.status = "completed"
        record.finished_at = datetime.now(UTC)
        logger.info("Task completed id=%s name=%s identifier=%s", record.id, record.name, record.identifier)
        return result
