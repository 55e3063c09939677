"""Submission rate limiting keyed by (user, session)."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Protocol
from uuid import UUID

from ranked_sessions.errors import RateLimitError
from ranked_sessions.services.clock import Clock, utc_now

DEFAULT_COOLDOWN = timedelta(seconds=10)
DEFAULT_PRUNE_THRESHOLD = 2000


class SubmissionRateLimiter(Protocol):
    """Guard allowing one submission per (user, session) per cooldown."""

    def check_and_record(self, user_id: UUID, session_id: UUID) -> None:
        """Record an attempt or raise RateLimitError if still cooling down."""

    def reset(self) -> None:
        """Forget all recorded attempts."""


@dataclass
class InMemorySubmissionRateLimiter(SubmissionRateLimiter):
    """Process-local limiter.

    State is not shared between processes, so each running instance enforces
    the cooldown independently.
    """

    cooldown: timedelta = DEFAULT_COOLDOWN
    clock: Clock = utc_now
    prune_threshold: int = DEFAULT_PRUNE_THRESHOLD
    _entries: dict[tuple[UUID, UUID], datetime] = field(
        default_factory=dict, init=False, repr=False
    )

    def check_and_record(self, user_id: UUID, session_id: UUID) -> None:
        """Record an attempt or raise RateLimitError if still cooling down."""
        now = self.clock()
        key = (user_id, session_id)
        previous = self._entries.get(key)
        if previous is not None and now - previous < self.cooldown:
            raise RateLimitError(
                "Please wait before submitting another result for this session",
                metadata={"user_id": str(user_id), "session_id": str(session_id)},
            )
        self._entries[key] = now
        if len(self._entries) > self.prune_threshold:
            self._prune(now)

    def reset(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def _prune(self, now: datetime) -> None:
        expired = [
            key
            for key, recorded_at in self._entries.items()
            if now - recorded_at >= self.cooldown
        ]
        for key in expired:
            self._entries.pop(key, None)
