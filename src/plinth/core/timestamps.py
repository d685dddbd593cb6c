"""UTC timestamp helpers shared by the repository and the migrator."""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)
