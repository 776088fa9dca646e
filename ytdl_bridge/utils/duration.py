import math
from typing import Any, Optional


def format_duration(seconds: Any) -> Optional[str]:
    """
    Render a duration in seconds as ``H:MM:SS`` / ``M:SS`` / ``S``.

    Values that are already formatted (contain ``:``), missing values and
    anything that is not a finite number are returned unchanged. Fractional
    seconds are truncated.
    """
    if seconds is None or seconds == "" or isinstance(seconds, bool):
        return seconds

    value = seconds
    if isinstance(value, str):
        if ":" in value:
            return seconds
        try:
            value = float(value)
        except ValueError:
            return seconds
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return seconds

    total = int(value)
    minutes, secs = divmod(total, 60)
    hours, minutes = divmod(minutes, 60)

    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    if minutes:
        return f"{minutes}:{secs:02d}"
    return str(secs)
