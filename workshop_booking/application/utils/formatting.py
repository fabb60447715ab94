from __future__ import annotations

from datetime import date


def format_duration(seconds: int | float) -> str:
    seconds = max(int(seconds), 0)
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60

    if hours > 0:
        return f"{hours}h {minutes}m"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def format_time_remaining(seconds: int | float) -> str:
    if int(seconds) <= 0:
        return "Time arrived"
    return format_duration(seconds)


def booking_reference(booking_id: int, year: int | None = None) -> str:
    """Human-facing reference, e.g. BK-2025-001234."""
    return f"BK-{year or date.today().year}-{booking_id:06d}"
