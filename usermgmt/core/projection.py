"""Local user projection and its synchronization with Keycloak.

Keycloak stays the source of truth. After each user mutation succeeds
remotely, ``ProjectionSync`` writes the matching change to the local
``users`` table. The two writes are not transactional: a failed local write is
logged, recorded as a ``SyncOutcome`` and never propagated to the caller.
"""
from __future__ import annotations
import logging
import uuid
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.orm import sessionmaker

from .database import Base

logger = logging.getLogger(__name__)

JOURNAL_SIZE = 200


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserRecord(Base):
    __tablename__ = "users"

    user_id = Column(String(36), primary_key=True)
    email = Column(String(255), nullable=False)
    full_name = Column(String(255))
    username = Column(String(90))
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    def __repr__(self) -> str:
        return f"<UserRecord {self.user_id} active={self.is_active}>"


def build_full_name(first_name: Optional[str], last_name: Optional[str]) -> Optional[str]:
    if first_name is not None and last_name is not None:
        return f"{first_name} {last_name}"
    return first_name if first_name is not None else last_name


class UserProjectionStore:
    """Repository over the ``users`` table."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def find_by_id(self, user_id: str) -> Optional[UserRecord]:
        with self.session_factory() as session:
            return session.get(UserRecord, user_id)

    def save(self, record: UserRecord) -> UserRecord:
        """Insert or update ``record`` by primary key."""
        with self.session_factory() as session:
            merged = session.merge(record)
            session.commit()
            return merged


@dataclass(frozen=True)
class SyncOutcome:
    """Result of one local write following a remote user mutation."""

    operation: str
    user_id: str
    succeeded: bool
    error: Optional[str] = None


class ProjectionSync:
    """Applies user mutations to the projection and records the outcome."""

    def __init__(
        self,
        store: UserProjectionStore,
        observer: Optional[Callable[[SyncOutcome], None]] = None,
        journal_size: int = JOURNAL_SIZE,
    ):
        self.store = store
        self.observer = observer
        self.journal: deque[SyncOutcome] = deque(maxlen=journal_size)

    def on_user_created(self, user_id: str, representation: dict) -> SyncOutcome:
        return self._run("create", user_id, lambda key: self._insert(key, representation))

    def on_user_updated(self, user_id: str, representation: dict) -> SyncOutcome:
        return self._run("update", user_id, lambda key: self._refresh_active(key, representation))

    def on_user_deleted(self, user_id: str) -> SyncOutcome:
        return self._run("delete", user_id, self._deactivate)

    def failures(self) -> list[SyncOutcome]:
        return [outcome for outcome in self.journal if not outcome.succeeded]

    def _run(self, operation: str, user_id: str, action: Callable[[str], None]) -> SyncOutcome:
        try:
            key = str(uuid.UUID(str(user_id)))
        except ValueError:
            logger.error("Invalid UUID format for user ID: %s", user_id)
            return self._record(SyncOutcome(operation, user_id, False, f"Invalid UUID format: {user_id}"))

        try:
            action(key)
        except Exception as exc:
            logger.error("Error syncing user %s to database (%s): %s", user_id, operation, exc, exc_info=True)
            return self._record(SyncOutcome(operation, user_id, False, str(exc)))
        return self._record(SyncOutcome(operation, user_id, True))

    def _record(self, outcome: SyncOutcome) -> SyncOutcome:
        self.journal.append(outcome)
        if self.observer is not None:
            try:
                self.observer(outcome)
            except Exception:
                logger.exception("Projection sync observer failed")
        return outcome

    def _insert(self, key: str, representation: dict) -> None:
        record = UserRecord(
            user_id=key,
            email=representation.get("email"),
            full_name=build_full_name(representation.get("firstName"), representation.get("lastName")),
            username=representation.get("username"),
            is_active=bool(representation.get("enabled", False)),
        )
        self.store.save(record)
        logger.info("User synced to database with ID: %s", key)

    def _refresh_active(self, key: str, representation: dict) -> None:
        record = self.store.find_by_id(key)
        if record is None:
            logger.warning("User %s not found in database during update, creating new record", key)
            self._insert(key, representation)
            return
        # active -> inactive only; a re-enable upstream does not revive the row
        record.is_active = bool(record.is_active and representation.get("enabled", False))
        self.store.save(record)
        logger.info("User database record updated (is_active) for ID: %s", key)

    def _deactivate(self, key: str) -> None:
        record = self.store.find_by_id(key)
        if record is None:
            logger.warning("User %s not found in database during delete", key)
            return
        record.is_active = False
        self.store.save(record)
        logger.info("User soft deleted in database with ID: %s", key)
