from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import fields
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterator

from conversation.models import CONTEXT_TYPES, Session, SessionContext
from core.enums import SessionState

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL_MINUTES = 5


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore:
    """In-memory conversation sessions, one per sender key.

    Expired entries are superseded lazily by ``get``; nothing is removed in
    the background unless ``purge_expired`` is called. Entries for users who
    never return stay in memory until the process exits.
    """

    def __init__(
        self,
        session_ttl_minutes: float = DEFAULT_SESSION_TTL_MINUTES,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self.ttl = timedelta(minutes=float(session_ttl_minutes))
        self._now = now or _utc_now
        self._sessions: dict[str, Session] = {}
        self._guard = threading.Lock()
        self._key_locks: dict[str, threading.Lock] = {}

    @contextmanager
    def lock(self, key: str) -> Iterator[None]:
        while True:
            with self._guard:
                key_lock = self._key_locks.setdefault(key, threading.Lock())
            key_lock.acquire()
            with self._guard:
                current = self._key_locks.get(key)
            if current is key_lock:
                break
            # purged while we waited; retry with the replacement lock
            key_lock.release()
        try:
            yield
        finally:
            key_lock.release()

    def get(self, key: str) -> Session:
        now = self._now()
        with self._guard:
            session = self._sessions.get(key)
            if session is None or self._is_expired(session, now):
                if session is not None:
                    logger.debug("session-expired key=%s state=%s", key, session.state.value)
                session = Session(key=key, state=SessionState.IDLE, context=None, updated_at=now)
                self._sessions[key] = session
            else:
                session.updated_at = now
            return session

    def update(self, key: str, state: SessionState, **context_patch: Any) -> Session:
        if state == SessionState.IDLE:
            if context_patch:
                raise ValueError("IDLE sessions carry no context")
            return self.clear(key)

        now = self._now()
        with self._guard:
            current = self._sessions.get(key)
            previous = None
            if current is not None and not self._is_expired(current, now):
                previous = current.context
            context = _merge_context(state, previous, context_patch)
            session = Session(key=key, state=state, context=context, updated_at=now)
            self._sessions[key] = session
        logger.debug("session-updated key=%s state=%s", key, state.value)
        return session

    def clear(self, key: str) -> Session:
        session = Session(key=key, state=SessionState.IDLE, context=None, updated_at=self._now())
        with self._guard:
            self._sessions[key] = session
        return session

    def purge_expired(self) -> int:
        now = self._now()
        with self._guard:
            expired = [key for key, session in self._sessions.items() if self._is_expired(session, now)]
            for key in expired:
                del self._sessions[key]
                lock = self._key_locks.get(key)
                # a held lock means a message for this key is in flight
                if lock is not None and lock.acquire(blocking=False):
                    try:
                        del self._key_locks[key]
                    finally:
                        lock.release()
        if expired:
            logger.info("sessions-purged count=%d", len(expired))
        return len(expired)

    def __len__(self) -> int:
        with self._guard:
            return len(self._sessions)

    def _is_expired(self, session: Session, now: datetime) -> bool:
        return now - session.updated_at >= self.ttl


def _merge_context(
    state: SessionState,
    previous: SessionContext | None,
    patch: dict[str, Any],
) -> SessionContext:
    context_type = CONTEXT_TYPES.get(state)
    if context_type is None:
        raise ValueError(f"no context type registered for state {state.value}")
    accepted = {item.name for item in fields(context_type)}
    unknown = set(patch) - accepted
    if unknown:
        raise ValueError(f"unknown context fields for {state.value}: {sorted(unknown)}")

    values: dict[str, Any] = {}
    if previous is not None:
        for item in fields(previous):
            if item.name in accepted:
                values[item.name] = getattr(previous, item.name)
    values.update(patch)
    return context_type(**values)
