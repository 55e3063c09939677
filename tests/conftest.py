"""Shared test fixtures."""

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from ranked_sessions.config import Settings
from ranked_sessions.containers import AppContainer
from ranked_sessions.domain.rankings import RankingRecord, RatingChange
from ranked_sessions.domain.sessions import (
    RANKED_RESULT_STATUSES,
    SessionRecord,
    SessionStatus,
)
from ranked_sessions.errors import (
    ErrorCodes,
    ForbiddenError,
    NotFoundError,
    RepositoryConflictError,
    RepositoryError,
    SessionNotActiveError,
    ValidationError,
)
from ranked_sessions.services.leaderboard import (
    LeaderboardRepository,
    LeaderboardService,
)
from ranked_sessions.services.lifecycle import (
    SessionLifecycleService,
    SessionRepository,
)
from ranked_sessions.services.metrics import InMemoryMetrics
from ranked_sessions.services.rankings import RankingRepository, RankingService
from ranked_sessions.services.rate_limit import InMemorySubmissionRateLimiter

FIXED_NOW = datetime(2026, 2, 20, 20, 0, tzinfo=UTC)


@dataclass
class MutableClock:
    """Clock that only moves when a test says so."""

    now: datetime = FIXED_NOW

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


@dataclass
class InMemorySessionRepository(SessionRepository):
    """In-memory session repository for tests."""

    sessions: dict[UUID, SessionRecord] = field(default_factory=dict)
    participants: dict[UUID, set[UUID]] = field(default_factory=dict)
    update_calls: list[tuple[str, list[UUID]]] = field(default_factory=list)
    fail_on: set[str] = field(default_factory=set)

    def add(  # noqa: PLR0913
        self,
        status: SessionStatus,
        created_at: datetime,
        *,
        is_ranked: bool = True,
        host_id: UUID | None = None,
        participants: Iterable[UUID] = (),
        started_at: datetime | None = None,
        completed_at: datetime | None = None,
        archived_at: datetime | None = None,
    ) -> SessionRecord:
        session = SessionRecord(
            id=uuid4(),
            status=status,
            is_ranked=is_ranked,
            host_id=host_id or uuid4(),
            created_at=created_at,
            started_at=started_at,
            completed_at=completed_at,
            archived_at=archived_at,
        )
        self.sessions[session.id] = session
        self.participants[session.id] = set(participants)
        return session

    def get_session(self, session_id: UUID) -> SessionRecord | None:
        self._maybe_fail("get_session")
        return self.sessions.get(session_id)

    def list_joined_participant_ids(self, session_id: UUID) -> list[UUID]:
        self._maybe_fail("list_joined_participant_ids")
        return sorted(self.participants.get(session_id, set()), key=str)

    def find_stale_active_ids(self, cutoff: datetime, limit: int) -> list[UUID]:
        self._maybe_fail("find_stale_active_ids")
        matches = [
            session.id
            for session in self._ordered()
            if session.status == SessionStatus.ACTIVE
            and (
                (session.started_at is not None and session.started_at <= cutoff)
                or (session.started_at is None and session.created_at <= cutoff)
            )
        ]
        return matches[:limit]

    def complete_sessions(self, session_ids: list[UUID], now: datetime) -> int:
        self._maybe_fail("complete_sessions")
        self.update_calls.append(("complete", list(session_ids)))
        count = 0
        for session_id in session_ids:
            session = self.sessions.get(session_id)
            if session and session.status == SessionStatus.ACTIVE:
                self.sessions[session_id] = replace(
                    session, status=SessionStatus.COMPLETED, completed_at=now
                )
                count += 1
        return count

    def find_retired_completed_ids(self, cutoff: datetime, limit: int) -> list[UUID]:
        self._maybe_fail("find_retired_completed_ids")
        matches = [
            session.id
            for session in self._ordered()
            if session.status == SessionStatus.COMPLETED
            and session.archived_at is None
            and session.completed_at is not None
            and session.completed_at <= cutoff
        ]
        return matches[:limit]

    def archive_sessions(self, session_ids: list[UUID], now: datetime) -> int:
        self._maybe_fail("archive_sessions")
        self.update_calls.append(("archive", list(session_ids)))
        count = 0
        for session_id in session_ids:
            session = self.sessions.get(session_id)
            if (
                session
                and session.status == SessionStatus.COMPLETED
                and session.archived_at is None
            ):
                self.sessions[session_id] = replace(session, archived_at=now)
                count += 1
        return count

    def _ordered(self) -> list[SessionRecord]:
        return sorted(self.sessions.values(), key=lambda session: session.created_at)

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise RepositoryError(f"{operation} failed")


@dataclass
class InMemoryRankingRepository(RankingRepository, LeaderboardRepository):
    """In-memory ranking repository for tests."""

    rankings: dict[UUID, RankingRecord] = field(default_factory=dict)
    results: list[dict[str, object]] = field(default_factory=list)
    ensure_calls: list[UUID] = field(default_factory=list)
    apply_calls: int = 0
    fail_on: set[str] = field(default_factory=set)
    session_repository: InMemorySessionRepository | None = None

    def ensure_ranking(self, user_id: UUID) -> None:
        self._maybe_fail("ensure_ranking")
        self.ensure_calls.append(user_id)
        self.rankings.setdefault(user_id, RankingRecord(user_id=user_id))

    def get_rankings(self, user_ids: list[UUID]) -> list[RankingRecord]:
        self._maybe_fail("get_rankings")
        return [self.rankings[user] for user in user_ids if user in self.rankings]

    def count_recent_matches_between(
        self, user_a: UUID, user_b: UUID, since: datetime
    ) -> int:
        self._maybe_fail("count_recent_matches_between")
        pair = {user_a, user_b}
        return sum(
            1
            for result in self.results
            if {result["winner_id"], result["loser_id"]} == pair
            and result["created_at"] >= since
        )

    def apply_match_result(
        self,
        session_id: UUID,
        changes: list[RatingChange],
        occurred_at: datetime,
        submitted_by: UUID,
    ) -> None:
        self.apply_calls += 1
        self._maybe_fail("apply_match_result")
        if self.session_repository is not None:
            self._check_locked_session(session_id, changes, submitted_by)
        if any(result["session_id"] == session_id for result in self.results):
            raise RepositoryConflictError("MATCH_RESULT_EXISTS")
        for change in changes:
            current = self.rankings.get(change.user_id)
            if current is None or current.rating != change.previous_rating:
                raise RepositoryConflictError("RATING_CONFLICT")
        for change in changes:
            self.rankings[change.user_id] = RankingRecord(
                user_id=change.user_id,
                rating=change.rating,
                wins=change.wins,
                losses=change.losses,
                last_ranked_match_at=occurred_at,
            )
        winner = next(change for change in changes if change.delta > 0)
        loser = next(change for change in changes if change.delta < 0)
        self.results.append(
            {
                "session_id": session_id,
                "winner_id": winner.user_id,
                "loser_id": loser.user_id,
                "rating_delta": winner.delta,
                "created_at": occurred_at,
            }
        )
        if self.session_repository is not None:
            session = self.session_repository.sessions.get(session_id)
            if session and session.status == SessionStatus.ACTIVE:
                self.session_repository.sessions[session_id] = replace(
                    session, status=SessionStatus.COMPLETED, completed_at=occurred_at
                )

    def list_top_rankings(
        self, limit: int, since: datetime | None = None
    ) -> list[RankingRecord]:
        self._maybe_fail("list_top_rankings")
        rows = [
            row
            for row in self.rankings.values()
            if since is None
            or (
                row.last_ranked_match_at is not None
                and row.last_ranked_match_at >= since
            )
        ]
        ordered = sorted(rows, key=lambda row: (-row.rating, str(row.user_id)))
        return ordered[:limit]

    def _check_locked_session(
        self, session_id: UUID, changes: list[RatingChange], submitted_by: UUID
    ) -> None:
        """Repeat the checks apply_ranked_match_result makes under its row lock."""
        assert self.session_repository is not None
        session = self.session_repository.sessions.get(session_id)
        if session is None:
            raise NotFoundError("Session", session_id, ErrorCodes.SESSION_NOT_FOUND)
        if session.host_id != submitted_by:
            raise ForbiddenError("Only the host can submit ranked results")
        if not session.is_ranked:
            raise ValidationError("Ranked session required")
        if session.status not in RANKED_RESULT_STATUSES:
            raise SessionNotActiveError("Session is no longer active")
        joined = self.session_repository.participants.get(session_id, set())
        if len(joined) < 2 or any(change.user_id not in joined for change in changes):
            raise ValidationError("Participants are not joined to the session")

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise RepositoryError(f"{operation} failed")


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock()


@pytest.fixture
def session_repository() -> InMemorySessionRepository:
    return InMemorySessionRepository()


@pytest.fixture
def ranking_repository(
    session_repository: InMemorySessionRepository,
) -> InMemoryRankingRepository:
    return InMemoryRankingRepository(session_repository=session_repository)


@pytest.fixture
def metrics() -> InMemoryMetrics:
    return InMemoryMetrics()


@pytest.fixture
def rate_limiter(clock: MutableClock) -> InMemorySubmissionRateLimiter:
    return InMemorySubmissionRateLimiter(clock=clock)


@pytest.fixture
def ranking_service(
    ranking_repository: InMemoryRankingRepository,
    session_repository: InMemorySessionRepository,
    rate_limiter: InMemorySubmissionRateLimiter,
    metrics: InMemoryMetrics,
    clock: MutableClock,
) -> RankingService:
    return RankingService(
        ranking_repository=ranking_repository,
        session_repository=session_repository,
        rate_limiter=rate_limiter,
        metrics=metrics,
        clock=clock,
    )


@pytest.fixture
def lifecycle_service(
    session_repository: InMemorySessionRepository, clock: MutableClock
) -> SessionLifecycleService:
    return SessionLifecycleService(
        repository=session_repository,
        auto_complete_after_hours=2,
        completed_retention_hours=2,
        batch_size=50,
        clock=clock,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="test-header.test-payload.test-signature",
        ranking_enabled=True,
    )


@pytest.fixture
def container(
    settings: Settings,
    ranking_service: RankingService,
    lifecycle_service: SessionLifecycleService,
    ranking_repository: InMemoryRankingRepository,
    metrics: InMemoryMetrics,
    clock: MutableClock,
) -> AppContainer:
    return AppContainer(
        settings=settings,
        metrics=metrics,
        ranking_service=ranking_service,
        lifecycle_service=lifecycle_service,
        leaderboard_service=LeaderboardService(ranking_repository, clock=clock),
    )
