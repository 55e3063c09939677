"""Ranked match result gating and rating application."""

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Protocol
from uuid import UUID

from ranked_sessions.domain.rankings import (
    MatchResult,
    RankingRecord,
    RatingChange,
    TierPromotion,
)
from ranked_sessions.domain.sessions import RANKED_RESULT_STATUSES, SessionRecord
from ranked_sessions.domain.tiers import Tier, get_tier_from_rating, is_promotion
from ranked_sessions.errors import (
    ConflictError,
    ErrorCodes,
    FeatureDisabledError,
    ForbiddenError,
    NotFoundError,
    RepositoryConflictError,
    RepositoryError,
    SessionNotActiveError,
    StorageError,
    ValidationError,
)
from ranked_sessions.services import metrics as metric_names
from ranked_sessions.services.clock import Clock, utc_now
from ranked_sessions.services.lifecycle import SessionRepository
from ranked_sessions.services.metrics import MetricsSink
from ranked_sessions.services.rate_limit import SubmissionRateLimiter
from ranked_sessions.services.rating import EloParameters, apply_match_outcome

logger = logging.getLogger(__name__)

DEFAULT_MIN_SESSION_DURATION = timedelta(minutes=2)
DEFAULT_MAX_MATCHES_PER_OPPONENT = 3
DEFAULT_OPPONENT_WINDOW = timedelta(hours=24)
MIN_JOINED_PARTICIPANTS = 2


class RankingRepository(Protocol):
    """Persistence interface for ladder rows and match results."""

    def ensure_ranking(self, user_id: UUID) -> None:
        """Insert a default ranking row unless one exists."""

    def get_rankings(self, user_ids: list[UUID]) -> list[RankingRecord]:
        """Return ranking rows for the given users."""

    def count_recent_matches_between(
        self, user_a: UUID, user_b: UUID, since: datetime
    ) -> int:
        """Return ranked results between two users recorded since a time."""

    def apply_match_result(
        self,
        session_id: UUID,
        changes: list[RatingChange],
        occurred_at: datetime,
        submitted_by: UUID,
    ) -> None:
        """Atomically persist rating changes, the result row and the session lock.

        Raises RepositoryConflictError when a result already exists for the
        session or a participant's rating no longer matches previous_rating.
        Session checks are repeated under the session row lock; a session that
        changed since it was read raises the matching AppError.
        """


@dataclass
class RankingService:
    """Gates ranked submissions and applies pairwise rating updates."""

    ranking_repository: RankingRepository
    session_repository: SessionRepository
    rate_limiter: SubmissionRateLimiter
    metrics: MetricsSink
    enabled: bool = True
    elo: EloParameters = field(default_factory=EloParameters)
    min_session_duration: timedelta = DEFAULT_MIN_SESSION_DURATION
    max_matches_per_opponent: int = DEFAULT_MAX_MATCHES_PER_OPPONENT
    opponent_window: timedelta = DEFAULT_OPPONENT_WINDOW
    clock: Clock = field(default=utc_now, repr=False)

    @staticmethod
    def get_tier_from_rating(rating: int) -> Tier:
        """Return the tier for a rating."""
        return get_tier_from_rating(rating)

    def enforce_submission_rate_limit(self, user_id: UUID, session_id: UUID) -> None:
        """Reject a repeat submission for the same (user, session) pair."""
        self.rate_limiter.check_and_record(user_id, session_id)

    def ensure_ranking_row(self, user_id: UUID) -> None:
        """Create the default ranking row for a user if it is missing."""
        try:
            self.ranking_repository.ensure_ranking(user_id)
        except RepositoryError as exc:
            logger.exception("Failed to ensure ranking row for user %s", user_id)
            raise StorageError(
                "Failed to ensure user ranking row",
                metadata={"user_id": str(user_id)},
            ) from exc

    def enforce_minimum_session_duration(self, session: SessionRecord) -> None:
        """Reject results for sessions that cannot have been played out yet."""
        elapsed = self.clock() - session.created_at
        if elapsed < self.min_session_duration:
            self.metrics.increment(
                metric_names.SUSPICIOUS_RANKED_ACTIVITY,
                labels={"reason": "short_duration"},
            )
            logger.warning(
                "Ranked result for session %s rejected after %ss",
                session.id,
                int(elapsed.total_seconds()),
            )
            raise ValidationError(
                "Ranked match result cannot be submitted this early",
                metadata={"session_id": str(session.id)},
            )

    def enforce_host_submission(
        self, session: SessionRecord, submitted_by: UUID
    ) -> None:
        """Only the session host may report a ranked result."""
        if submitted_by != session.host_id:
            logger.warning(
                "User %s tried to submit a ranked result for session %s",
                submitted_by,
                session.id,
            )
            raise ForbiddenError(
                "Only the host can submit ranked results",
                metadata={
                    "session_id": str(session.id),
                    "user_id": str(submitted_by),
                },
            )

    def enforce_joined_participants(
        self, session_id: UUID, winner_id: UUID, loser_id: UUID
    ) -> None:
        """Require both players to be joined participants of the session."""
        try:
            joined = set(
                self.session_repository.list_joined_participant_ids(session_id)
            )
        except RepositoryError as exc:
            logger.exception(
                "Failed to load participants for session %s", session_id
            )
            raise StorageError(
                "Failed to load session participants",
                metadata={"session_id": str(session_id)},
            ) from exc
        if len(joined) < MIN_JOINED_PARTICIPANTS:
            raise ValidationError(
                "Ranked result submission requires at least 2 joined participants",
                metadata={"session_id": str(session_id)},
            )
        outsiders = [user for user in (winner_id, loser_id) if user not in joined]
        if outsiders:
            raise ValidationError(
                "winner_id and loser_id must be joined participants in this session",
                metadata={
                    "session_id": str(session_id),
                    "user_ids": [str(user) for user in outsiders],
                },
            )

    def enforce_opponent_window_limit(self, winner_id: UUID, loser_id: UUID) -> None:
        """Reject pairs that already played too many ranked matches recently."""
        since = self.clock() - self.opponent_window
        try:
            recent = self.ranking_repository.count_recent_matches_between(
                winner_id, loser_id, since
            )
        except RepositoryError as exc:
            logger.exception(
                "Failed opponent window check for %s and %s", winner_id, loser_id
            )
            raise StorageError(
                "Failed anti-abuse opponent check",
                metadata={"user_ids": [str(winner_id), str(loser_id)]},
            ) from exc
        if recent >= self.max_matches_per_opponent:
            self.metrics.increment(
                metric_names.SUSPICIOUS_RANKED_ACTIVITY,
                labels={"reason": "opponent_limit"},
            )
            logger.warning(
                "Opponent limit reached for %s and %s (%s recent matches)",
                winner_id,
                loser_id,
                recent,
            )
            raise ValidationError(
                "Too many recent ranked matches against the same opponent"
            )

    def submit_match_result(
        self,
        session_id: UUID,
        winner_id: UUID,
        loser_id: UUID,
        submitted_by: UUID,
    ) -> MatchResult:
        """Validate a ranked result and apply it to both participants."""
        if not self.enabled:
            raise FeatureDisabledError("Ranked play")

        self.enforce_submission_rate_limit(submitted_by, session_id)
        session = self._load_ranked_session(session_id)
        self.enforce_host_submission(session, submitted_by)
        if winner_id == loser_id:
            raise ValidationError(
                "Winner and loser must be different participants",
                metadata={"session_id": str(session_id)},
            )
        self.enforce_minimum_session_duration(session)
        self.enforce_joined_participants(session_id, winner_id, loser_id)
        self.enforce_opponent_window_limit(winner_id, loser_id)

        self.ensure_ranking_row(winner_id)
        self.ensure_ranking_row(loser_id)
        winner, loser = self._load_participants(winner_id, loser_id)
        changes = apply_match_outcome(winner, loser, self.elo)

        occurred_at = self.clock()
        try:
            self.ranking_repository.apply_match_result(
                session_id, list(changes), occurred_at, submitted_by
            )
        except RepositoryConflictError as exc:
            logger.warning(
                "Ranked result for session %s conflicted: %s", session_id, exc
            )
            raise ConflictError(
                "Result already submitted or ratings changed; retry the submission",
                metadata={"session_id": str(session_id)},
            ) from exc
        except RepositoryError as exc:
            logger.exception("Failed to persist ranked result for %s", session_id)
            raise StorageError(
                "Failed to submit ranked match result",
                metadata={"session_id": str(session_id)},
            ) from exc

        promotions = tuple(self._emit_promotions(changes))
        self.metrics.increment(metric_names.RANKED_MATCH_RESULTS)
        self.metrics.increment(metric_names.RATING_UPDATES, amount=len(changes))
        logger.info(
            "Match result submitted for session %s: winner=%s loser=%s delta=%s",
            session_id,
            winner_id,
            loser_id,
            changes[0].delta,
        )
        return MatchResult(
            session_id=session_id,
            winner_id=winner_id,
            loser_id=loser_id,
            updates=changes,
            promotions=promotions,
        )

    def _load_ranked_session(self, session_id: UUID) -> SessionRecord:
        try:
            session = self.session_repository.get_session(session_id)
        except RepositoryError as exc:
            logger.exception("Failed to load ranked session %s", session_id)
            raise StorageError(
                "Failed to load ranked session",
                metadata={"session_id": str(session_id)},
            ) from exc
        if session is None:
            raise NotFoundError("Session", session_id, ErrorCodes.SESSION_NOT_FOUND)
        if not session.is_ranked:
            raise ValidationError(
                "Match result submission is only available for ranked sessions",
                metadata={"session_id": str(session_id)},
            )
        if session.status not in RANKED_RESULT_STATUSES:
            raise SessionNotActiveError(
                "Session must be active or completed to submit ranked results",
                metadata={"session_id": str(session_id), "status": session.status},
            )
        return session

    def _load_participants(
        self, winner_id: UUID, loser_id: UUID
    ) -> tuple[RankingRecord, RankingRecord]:
        try:
            rows = self.ranking_repository.get_rankings([winner_id, loser_id])
        except RepositoryError as exc:
            logger.exception(
                "Failed to load rankings for %s and %s", winner_id, loser_id
            )
            raise StorageError(
                "Failed to load participant rankings",
                metadata={"user_ids": [str(winner_id), str(loser_id)]},
            ) from exc
        by_user = {row.user_id: row for row in rows}
        missing = [user for user in (winner_id, loser_id) if user not in by_user]
        if missing:
            raise StorageError(
                "Ranking rows missing after ensure",
                metadata={"user_ids": [str(user) for user in missing]},
            )
        return by_user[winner_id], by_user[loser_id]

    def _emit_promotions(
        self, changes: tuple[RatingChange, ...]
    ) -> Iterator[TierPromotion]:
        for change in changes:
            if not is_promotion(change.previous_tier, change.tier):
                continue
            self.metrics.increment(
                metric_names.TIER_PROMOTIONS,
                labels={"from": str(change.previous_tier), "to": str(change.tier)},
            )
            logger.info(
                "User %s promoted from %s to %s",
                change.user_id,
                change.previous_tier,
                change.tier,
            )
            yield TierPromotion(
                user_id=change.user_id,
                from_tier=change.previous_tier,
                to_tier=change.tier,
            )
