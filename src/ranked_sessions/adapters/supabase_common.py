"""Helpers shared by the Supabase repositories."""

from datetime import UTC, datetime
from typing import Any

from supabase import PostgrestAPIError

from ranked_sessions.errors import RepositoryError


def execute(query: Any, description: str) -> Any:
    """Run a PostgREST query, converting client errors into RepositoryError."""
    try:
        return query.execute()
    except PostgrestAPIError as exc:
        raise RepositoryError(f"{description}: {exc.message}") from exc


def to_iso(value: datetime) -> str:
    """Format a timestamp the way PostgREST filters expect it."""
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: object) -> datetime | None:
    """Parse an ISO timestamp column, returning None for null or empty values."""
    if isinstance(value, str) and value:
        parsed = datetime.fromisoformat(value)
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return None
