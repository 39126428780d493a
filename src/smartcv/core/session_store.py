from __future__ import annotations

import json
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from smartcv.types import JobRef, SearchCacheEntry

logger = logging.getLogger(__name__)

STATE = "state"
CV_TEXT = "cv"
EMAIL = "email"
COVER_LETTER = "cover_letter"
LAST_JOBS = "last_jobs"
PENDING_JOBS = "pending_jobs"

AWAITING_COVER_LETTER = "awaiting_cover_letter"


@dataclass(slots=True)
class _Entry:
    value: str
    expires_at: float


class ExpiringStore:
    """In-process key/value map where every key carries its own expiry.

    Expired keys are dropped when read, and writes sweep the whole map at most
    once per `sweep_interval_sec`.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, sweep_interval_sec: float = 60.0):
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.Lock()
        self.sweep_interval_sec = sweep_interval_sec
        self._next_sweep_at = clock() + sweep_interval_sec

    def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: str, ttl_sec: float) -> None:
        with self._lock:
            now = self._clock()
            if now >= self._next_sweep_at:
                self._purge_locked(now)
            self._entries[key] = _Entry(value=value, expires_at=now + ttl_sec)

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def purge_expired(self) -> int:
        with self._lock:
            return self._purge_locked(self._clock())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _purge_locked(self, now: float) -> int:
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]
        self._next_sweep_at = now + self.sweep_interval_sec
        if expired:
            logger.debug("Purged %s expired session keys", len(expired))
        return len(expired)


class SessionStore:
    def __init__(self, store: ExpiringStore, *, session_ttl_sec: int, search_ttl_sec: int):
        self.store = store
        self.session_ttl_sec = session_ttl_sec
        self.search_ttl_sec = search_ttl_sec

    @staticmethod
    def key(identifier: str, name: str) -> str:
        return f"{name}:{identifier}"

    def get(self, identifier: str, name: str) -> str | None:
        return self.store.get(self.key(identifier, name))

    def set(self, identifier: str, name: str, value: str, ttl_sec: float | None = None) -> None:
        ttl = self.session_ttl_sec if ttl_sec is None else ttl_sec
        self.store.set(self.key(identifier, name), value, ttl)

    def delete(self, identifier: str, name: str) -> None:
        self.store.delete(self.key(identifier, name))

    def get_json(self, identifier: str, name: str) -> Any:
        raw = self.get(identifier, name)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.error("Discarding undecodable cache entry key=%s identifier=%s", name, identifier)
            self.delete(identifier, name)
            return None

    def set_json(self, identifier: str, name: str, value: Any, ttl_sec: float | None = None) -> None:
        self.set(identifier, name, json.dumps(value), ttl_sec)

    def get_state(self, identifier: str) -> str | None:
        return self.get(identifier, STATE)

    def set_state(self, identifier: str, state: str) -> None:
        self.set(identifier, STATE, state)

    def clear_state(self, identifier: str) -> None:
        self.delete(identifier, STATE)

    def get_last_jobs(self, identifier: str) -> list[JobRef]:
        payload = self.get_json(identifier, LAST_JOBS)
        if not isinstance(payload, list):
            return []
        jobs: list[JobRef] = []
        for item in payload:
            try:
                jobs.append(JobRef.model_validate(item))
            except Exception:
                logger.warning("Skipping malformed last_jobs entry identifier=%s", identifier)
        return jobs

    def set_last_jobs(self, identifier: str, jobs: list[JobRef]) -> None:
        self.set_json(identifier, LAST_JOBS, [job.model_dump() for job in jobs], self.search_ttl_sec)

    def get_pending_jobs(self, identifier: str) -> list[str] | None:
        payload = self.get_json(identifier, PENDING_JOBS)
        if payload is None:
            return None
        if not isinstance(payload, list):
            logger.error("Discarding malformed pending_jobs identifier=%s", identifier)
            return []
        return [str(job_id) for job_id in payload]

    def set_pending_jobs(self, identifier: str, job_ids: list[str]) -> None:
        self.set_json(identifier, PENDING_JOBS, list(job_ids))

    def pop_pending_jobs(self, identifier: str) -> list[str] | None:
        job_ids = self.get_pending_jobs(identifier)
        if job_ids is not None:
            self.delete(identifier, PENDING_JOBS)
        return job_ids

    def get_search(self, signature: str) -> SearchCacheEntry | None:
        raw = self.store.get(signature)
        if raw is None:
            return None
        try:
            return SearchCacheEntry.model_validate_json(raw)
        except Exception:
            logger.error("Discarding undecodable search cache entry signature=%s", signature)
            self.store.delete(signature)
            return None

    def set_search(self, signature: str, entry: SearchCacheEntry) -> None:
        self.store.set(signature, entry.model_dump_json(), self.search_ttl_sec)
