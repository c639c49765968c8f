"""Time helpers shared by the engine and the persistence layer."""

from __future__ import annotations

from datetime import date, datetime, timezone


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def utc_isoformat(value: datetime | None = None) -> str:
    """Render `value` (default: now) as `YYYY-MM-DDTHH:MM:SS.sssZ`."""
    moment = value or utcnow()
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def today() -> date:
    """Return today's date in UTC."""
    return utcnow().date()


def parse_iso_datetime(value: str) -> datetime | None:
    """Parse an ISO date or datetime string; naive values are treated as UTC.

    Returns None when the string is not a valid ISO timestamp.
    """
    normalized = value.strip()
    if not normalized:
        return None
    if normalized.endswith(("Z", "z")):
        normalized = f"{normalized[:-1]}+00:00"
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed
