from datetime import datetime, timedelta, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes (Mongo returns them naive); aware values pass through."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def parse_utc(value: str | int | float | datetime) -> datetime:
    """Provider date -> aware UTC datetime.

    Accepts ISO 8601 strings with "Z", an offset or neither (read as UTC),
    unix timestamps, and datetimes.
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00"))).astimezone(timezone.utc)


def days_ago(days: int) -> datetime:
    return utcnow() - timedelta(days=days)
