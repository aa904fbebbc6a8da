from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
	return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
	"""Treat naive datetimes (as returned by SQLite) as UTC."""
	if value is None:
		return None
	if value.tzinfo is None:
		return value.replace(tzinfo=timezone.utc)
	return value
