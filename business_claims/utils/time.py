"""Time utilities (UTC now, naive-to-aware normalization, elapsed milliseconds)."""
from __future__ import annotations
import time
from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def elapsed_ms(start: float) -> float:
    return round((time.time() - start) * 1000, 2)


__all__ = ["utc_now", "ensure_utc", "elapsed_ms"]
