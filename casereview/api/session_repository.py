"""In-memory review session repository with count and TTL eviction."""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from casereview.backend.auth import Identity
from casereview.config.settings import APIConfig, ReconcileConfig
from casereview.engine.session import ReviewSession

SessionKey = tuple[str, str, str]


@dataclass
class SessionEntry:
    session: ReviewSession
    touched_at: float = field(default_factory=time.time)


class SessionRepository:
    """Review sessions keyed by (firm, user, matter)."""

    def __init__(
        self,
        max_sessions: int | None = None,
        ttl_seconds: int | None = None,
        reconcile: ReconcileConfig | None = None,
    ) -> None:
        self._max_sessions = max_sessions
        self._ttl_seconds = ttl_seconds
        self._reconcile = reconcile or ReconcileConfig()
        self._entries: dict[SessionKey, SessionEntry] = {}

    @staticmethod
    def from_config(
        config: APIConfig, reconcile: ReconcileConfig | None = None
    ) -> SessionRepository:
        return SessionRepository(
            max_sessions=config.session_retention_limit,
            ttl_seconds=config.session_ttl_s,
            reconcile=reconcile,
        )

    @staticmethod
    def key(identity: Identity, matter_id: str) -> SessionKey:
        return (identity.firm_id, identity.user_id, matter_id)

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, identity: Identity, matter_id: str) -> ReviewSession | None:
        key = self.key(identity, matter_id)
        entry = self._entries.get(key)
        if entry is None:
            return None
        now = time.time()
        if self._expired(entry, now):
            self._entries.pop(key, None)
            return None
        entry.touched_at = now
        return entry.session

    def get_or_create(self, identity: Identity, matter_id: str) -> ReviewSession:
        session = self.get(identity, matter_id)
        if session is not None:
            return session
        session = ReviewSession(matter_id, self._reconcile)
        self._entries[self.key(identity, matter_id)] = SessionEntry(session=session)
        self._evict()
        return session

    def remove(self, identity: Identity, matter_id: str) -> None:
        self._entries.pop(self.key(identity, matter_id), None)

    def clear(self) -> None:
        self._entries.clear()

    def _expired(self, entry: SessionEntry, now: float) -> bool:
        return (
            self._ttl_seconds is not None
            and self._ttl_seconds >= 0
            and now - entry.touched_at > self._ttl_seconds
        )

    def _evict(self) -> None:
        if not self._entries:
            return

        now = time.time()
        expired = [key for key, entry in self._entries.items() if self._expired(entry, now)]
        for key in expired:
            self._entries.pop(key, None)

        if self._max_sessions is not None and self._max_sessions >= 0:
            ordered = sorted(
                self._entries.items(), key=lambda item: item[1].touched_at, reverse=True
            )
            for key, _ in ordered[self._max_sessions :]:
                self._entries.pop(key, None)
