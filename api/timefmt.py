import math


def format_time(seconds: float | None) -> str:
    """Format a duration in seconds as ``m:ss``. Unknown or negative input shows ``0:00``."""
    if seconds is None or not math.isfinite(seconds) or seconds < 0:
        return "0:00"
    total = int(seconds)
    minutes, secs = divmod(total, 60)
    return f"{minutes}:{secs:02d}"
