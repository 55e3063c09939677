"""Time-driven session lifecycle sweeps."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Protocol
from uuid import UUID

from ranked_sessions.domain.sessions import LifecycleRunResult, SessionRecord
from ranked_sessions.errors import RepositoryError, StorageError
from ranked_sessions.services.clock import Clock, utc_now

logger = logging.getLogger(__name__)

DEFAULT_AUTO_COMPLETE_AFTER_HOURS = 2
DEFAULT_COMPLETED_RETENTION_HOURS = 2
DEFAULT_BATCH_SIZE = 200

PHASE_COMPLETE_STALE = "complete-stale"
PHASE_ARCHIVE_RETIRED = "archive-retired"


class SessionRepository(Protocol):
    """Persistence interface for session rows."""

    def get_session(self, session_id: UUID) -> SessionRecord | None:
        """Return a session by id, if present."""

    def list_joined_participant_ids(self, session_id: UUID) -> list[UUID]:
        """Return ids of participants currently joined to the session."""

    def find_stale_active_ids(self, cutoff: datetime, limit: int) -> list[UUID]:
        """Return active sessions started (or created, if never started) by cutoff."""

    def complete_sessions(self, session_ids: list[UUID], now: datetime) -> int:
        """Mark still-active sessions completed and return the updated count."""

    def find_retired_completed_ids(self, cutoff: datetime, limit: int) -> list[UUID]:
        """Return unarchived completed sessions completed by cutoff."""

    def archive_sessions(self, session_ids: list[UUID], now: datetime) -> int:
        """Stamp archived_at on unarchived completed sessions; return the count."""


def clamp_positive_int(value: float | None, fallback: int) -> int:
    """Round a config value, falling back when it is missing or below one."""
    if value is None:
        return fallback
    try:
        rounded = round(value)
    except (OverflowError, ValueError):
        return fallback
    return rounded if rounded >= 1 else fallback


@dataclass
class SessionLifecycleService:
    """Advances sessions through auto-completion and archival.

    Each phase is independently retriable. ``process_lifecycle`` runs them in
    order so sessions completed by phase one are judged for archival against
    their fresh ``completed_at`` rather than a stale one.
    """

    repository: SessionRepository
    auto_complete_after_hours: int = DEFAULT_AUTO_COMPLETE_AFTER_HOURS
    completed_retention_hours: int = DEFAULT_COMPLETED_RETENTION_HOURS
    batch_size: int = DEFAULT_BATCH_SIZE
    clock: Clock = field(default=utc_now, repr=False)

    def __post_init__(self) -> None:
        self.auto_complete_after_hours = clamp_positive_int(
            self.auto_complete_after_hours, DEFAULT_AUTO_COMPLETE_AFTER_HOURS
        )
        self.completed_retention_hours = clamp_positive_int(
            self.completed_retention_hours, DEFAULT_COMPLETED_RETENTION_HOURS
        )
        self.batch_size = clamp_positive_int(self.batch_size, DEFAULT_BATCH_SIZE)

    def stale_active_cutoff(self, now: datetime) -> datetime:
        return now - timedelta(hours=self.auto_complete_after_hours)

    def completed_retention_cutoff(self, now: datetime) -> datetime:
        return now - timedelta(hours=self.completed_retention_hours)

    def complete_stale_sessions(self, now: datetime | None = None) -> int:
        """Auto-complete active sessions past the staleness threshold."""
        resolved_now = now or self.clock()
        cutoff = self.stale_active_cutoff(resolved_now)
        try:
            session_ids = self.repository.find_stale_active_ids(cutoff, self.batch_size)
        except RepositoryError as exc:
            raise _phase_error(
                "Failed to find stale active sessions", PHASE_COMPLETE_STALE
            ) from exc
        if not session_ids:
            return 0
        try:
            count = self.repository.complete_sessions(session_ids, resolved_now)
        except RepositoryError as exc:
            raise _phase_error(
                "Failed to auto-complete sessions",
                PHASE_COMPLETE_STALE,
                matched_count=len(session_ids),
            ) from exc
        logger.info(
            "Auto-completed %s of %s stale active sessions", count, len(session_ids)
        )
        return count

    def archive_retired_sessions(self, now: datetime | None = None) -> int:
        """Archive completed sessions past the retention window."""
        resolved_now = now or self.clock()
        cutoff = self.completed_retention_cutoff(resolved_now)
        try:
            session_ids = self.repository.find_retired_completed_ids(
                cutoff, self.batch_size
            )
        except RepositoryError as exc:
            raise _phase_error(
                "Failed to find retention-expired completed sessions",
                PHASE_ARCHIVE_RETIRED,
            ) from exc
        if not session_ids:
            return 0
        try:
            count = self.repository.archive_sessions(session_ids, resolved_now)
        except RepositoryError as exc:
            raise _phase_error(
                "Failed to archive completed sessions",
                PHASE_ARCHIVE_RETIRED,
                matched_count=len(session_ids),
            ) from exc
        logger.info(
            "Archived %s of %s retention-expired sessions", count, len(session_ids)
        )
        return count

    def process_lifecycle(self, now: datetime | None = None) -> LifecycleRunResult:
        """Run auto-completion then archival and return both counts.

        A failure in archival does not undo auto-completion; the raised error
        carries ``auto_completed_count`` in its metadata.
        """
        resolved_now = now or self.clock()
        auto_completed = self.complete_stale_sessions(resolved_now)
        try:
            archived = self.archive_retired_sessions(resolved_now)
        except StorageError as exc:
            exc.metadata["auto_completed_count"] = auto_completed
            raise
        return LifecycleRunResult(
            auto_completed_count=auto_completed,
            archived_completed_count=archived,
            checked_at=resolved_now,
        )


def _phase_error(message: str, phase: str, **context: object) -> StorageError:
    logger.exception("%s (phase=%s)", message, phase)
    return StorageError(message, metadata={"phase": phase, **context})
