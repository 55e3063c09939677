"""Domain models for scheduled game sessions."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from uuid import UUID


class SessionStatus(StrEnum):
    """Lifecycle states of a session."""

    SCHEDULED = "scheduled"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


RANKED_RESULT_STATUSES = frozenset({SessionStatus.ACTIVE, SessionStatus.COMPLETED})


@dataclass(frozen=True)
class SessionRecord:
    """Represents a persisted session row."""

    id: UUID
    status: SessionStatus
    is_ranked: bool
    host_id: UUID
    created_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    archived_at: datetime | None = None


@dataclass(frozen=True)
class LifecycleRunResult:
    """Outcome of one lifecycle sweep."""

    auto_completed_count: int
    archived_completed_count: int
    checked_at: datetime

    def as_dict(self) -> dict[str, object]:
        return {
            "auto_completed_count": self.auto_completed_count,
            "archived_completed_count": self.archived_completed_count,
            "checked_at": self.checked_at.isoformat(),
        }
