from typing import Any, Optional

from ytdl_bridge.models.schemas import VideoInfo
from ytdl_bridge.utils.duration import format_duration


def parse_info(data: Any, cwd: Optional[str] = None) -> VideoInfo:
    """
    Wrap one decoded stdout record for callers.

    Adds ``path`` (the working directory, or "") and normalizes
    ``duration``. The decoded dict itself is left untouched.

    Raises:
        TypeError: if the record is not a JSON object.
    """
    if not isinstance(data, dict):
        raise TypeError(f"Expected a JSON object, got {type(data).__name__}")

    fields = dict(data)
    fields["path"] = str(cwd) if cwd else ""
    fields["duration"] = format_duration(fields.get("duration"))
    return VideoInfo(raw=fields)
