"""
Error taxonomy for calls into the extraction executable.

Setup and launch problems are fatal for a whole call; ``YtdlItemError`` is
bound to a single requested URL and travels through the per-item path.
"""
from typing import List, Optional


class YtdlError(Exception):
    """Base class for every error raised by ytdl_bridge."""


class ExecutableNotFoundError(YtdlError):
    """The extraction executable could not be located at startup."""


class ProcessLaunchError(YtdlError):
    """The child process could not be spawned."""


class OutputLimitError(YtdlError):
    """A single output line exceeded the configured buffer cap."""

    def __init__(self, message: str, limit: int):
        super().__init__(message)
        self.limit = limit


class YtdlItemError(YtdlError):
    """A diagnostic line reported as a failure for one requested URL."""

    def __init__(self, message: str, url: str = "", files: Optional[List[str]] = None):
        super().__init__(message)
        self.url = url
        # Subtitle files the same call still managed to write
        self.files = files or []
