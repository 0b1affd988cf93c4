from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_validator


def ensure_utc(value: Any) -> Any:
    """Parse ISO strings and make naive datetimes UTC-aware."""
    if isinstance(value, str):
        # Handle both naive ISO strings and RFC 3339 with timezone
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
    return value


class GovBillsModel(BaseModel):
    """Base class for all persisted govbills models."""

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("created_at", mode="before")
    @classmethod
    def ensure_timezone_aware(cls, value: Any) -> datetime:
        """Ensure datetime is timezone-aware (handles naive datetimes from older records)."""
        return ensure_utc(value)
