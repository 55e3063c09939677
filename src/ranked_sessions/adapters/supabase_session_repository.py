"""Supabase-backed session repository."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from ranked_sessions.adapters.supabase_common import execute, parse_timestamp, to_iso
from ranked_sessions.domain.sessions import SessionRecord, SessionStatus
from ranked_sessions.errors import RepositoryError
from ranked_sessions.services.lifecycle import SessionRepository

_SESSION_COLUMNS = (
    "id, status, is_ranked, host_id, created_at, started_at, completed_at, "
    "archived_at"
)


@dataclass
class SupabaseSessionRepository(SessionRepository):
    """Supabase implementation for session rows."""

    client: Client

    def get_session(self, session_id: UUID) -> SessionRecord | None:
        """Return a session by id, if present."""
        response = execute(
            self.client.table("sessions")
            .select(_SESSION_COLUMNS)
            .eq("id", str(session_id))
            .limit(1),
            "Failed to load session",
        )
        if not response.data:
            return None
        return _to_session(response.data[0])

    def list_joined_participant_ids(self, session_id: UUID) -> list[UUID]:
        """Return ids of participants currently joined to the session."""
        response = execute(
            self.client.table("session_participants")
            .select("user_id")
            .eq("session_id", str(session_id))
            .eq("state", "joined"),
            "Failed to load session participants",
        )
        return [UUID(row["user_id"]) for row in response.data or []]

    def find_stale_active_ids(self, cutoff: datetime, limit: int) -> list[UUID]:
        """Return active sessions started (or created, if never started) by cutoff."""
        cutoff_iso = to_iso(cutoff)
        response = execute(
            self.client.table("sessions")
            .select("id")
            .eq("status", SessionStatus.ACTIVE.value)
            .or_(
                f"started_at.lte.{cutoff_iso},"
                f"and(started_at.is.null,created_at.lte.{cutoff_iso})"
            )
            .order("created_at")
            .limit(limit),
            "Failed to find stale active sessions",
        )
        return [UUID(row["id"]) for row in response.data or []]

    def complete_sessions(self, session_ids: list[UUID], now: datetime) -> int:
        """Mark still-active sessions completed and return the updated count."""
        now_iso = to_iso(now)
        response = execute(
            self.client.table("sessions")
            .update(
                {
                    "status": SessionStatus.COMPLETED.value,
                    "completed_at": now_iso,
                    "updated_at": now_iso,
                }
            )
            .in_("id", [str(session_id) for session_id in session_ids])
            .eq("status", SessionStatus.ACTIVE.value),
            "Failed to auto-complete sessions",
        )
        return len(response.data or [])

    def find_retired_completed_ids(self, cutoff: datetime, limit: int) -> list[UUID]:
        """Return unarchived completed sessions completed by cutoff."""
        response = execute(
            self.client.table("sessions")
            .select("id")
            .eq("status", SessionStatus.COMPLETED.value)
            .is_("archived_at", "null")
            .lte("completed_at", to_iso(cutoff))
            .order("completed_at")
            .limit(limit),
            "Failed to find retention-expired completed sessions",
        )
        return [UUID(row["id"]) for row in response.data or []]

    def archive_sessions(self, session_ids: list[UUID], now: datetime) -> int:
        """Stamp archived_at on unarchived completed sessions; return the count."""
        now_iso = to_iso(now)
        response = execute(
            self.client.table("sessions")
            .update({"archived_at": now_iso, "updated_at": now_iso})
            .in_("id", [str(session_id) for session_id in session_ids])
            .eq("status", SessionStatus.COMPLETED.value)
            .is_("archived_at", "null"),
            "Failed to archive completed sessions",
        )
        return len(response.data or [])


def _to_session(row: dict[str, object]) -> SessionRecord:
    created_at = parse_timestamp(row.get("created_at"))
    if created_at is None:
        raise RepositoryError(f"Session {row.get('id')} has no created_at")
    return SessionRecord(
        id=UUID(str(row["id"])),
        status=SessionStatus(str(row["status"])),
        is_ranked=bool(row.get("is_ranked")),
        host_id=UUID(str(row["host_id"])),
        created_at=created_at,
        started_at=parse_timestamp(row.get("started_at")),
        completed_at=parse_timestamp(row.get("completed_at")),
        archived_at=parse_timestamp(row.get("archived_at")),
    )
