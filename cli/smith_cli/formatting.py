from __future__ import annotations

from datetime import datetime, timezone
from typing import Any


def parse_timestamp(value: datetime | str | None) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_age(seconds: int | None) -> str:
    if seconds is None:
        return "-"
    minutes = max(0, seconds) // 60
    hours = minutes // 60
    days = hours // 24
    if days > 0:
        return f"{days}d ago"
    if hours > 0:
        return f"{hours}h ago"
    return f"{minutes}m ago"


def format_last_seen(value: datetime | str | None, *, now: datetime | None = None) -> str:
    dt = parse_timestamp(value)
    if dt is None:
        return "never" if value is None else str(value)
    now = now or datetime.now(timezone.utc)
    return format_age(int((now - dt).total_seconds()))


def format_labels(labels: Any) -> str:
    if not isinstance(labels, dict) or not labels:
        return "-"
    return ", ".join(f"{k}={v}" for k, v in sorted(labels.items()))


def sort_by_last_seen(devices: list[dict]) -> list[dict]:
    """Most recently seen first; devices never seen go last."""
    seen = [d for d in devices if parse_timestamp(d.get("last_seen")) is not None]
    never = [d for d in devices if parse_timestamp(d.get("last_seen")) is None]
    seen.sort(key=lambda d: parse_timestamp(d.get("last_seen")), reverse=True)
    return seen + never
