from enum import Enum
from typing import Any, Dict, List, Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field


class OutputMode(str, Enum):
    """How the executable is asked to report results on stdout."""
    PRINT_JSON = "print_json"  # download and print one JSON record per item
    DUMP_JSON = "dump_json"    # simulate, dump one JSON record per item
    TEXT = "text"              # free-form text lines


class InvocationOptions(BaseModel):
    """
    Per-call process options.

    ``subtitles_retried`` is owned by the retry path: it is set on the copy
    used for the one-shot retry so the retry can never trigger again.
    """
    cwd: Optional[str] = None
    max_buffer_size: Optional[int] = Field(default=None, gt=0)
    subtitles_retried: bool = False
    env: Optional[Dict[str, str]] = None


class SubtitleOptions(BaseModel):
    auto: bool = False
    all_subs: bool = False
    lang: Optional[str] = None
    suppress_warnings: bool = True
    cwd: Optional[str] = None


class VideoInfo(BaseModel):
    """
    One record printed by the executable, plus ``path`` and a normalized
    ``duration``.

    The raw extractor fields are kept untouched in ``raw`` and are reachable
    with mapping access (``info["title"]``). ``filename()``, ``itag()`` and
    ``resolution()`` are kept for older callers and log a deprecation notice
    on every call.
    """
    raw: Dict[str, Any] = Field(default_factory=dict)

    def __getitem__(self, key: str) -> Any:
        return self.raw[key]

    def __contains__(self, key: object) -> bool:
        return key in self.raw

    def get(self, key: str, default: Any = None) -> Any:
        return self.raw.get(key, default)

    @property
    def path(self) -> str:
        return self.raw.get("path", "")

    @property
    def duration(self) -> Optional[str]:
        return self.raw.get("duration")

    def filename(self) -> Optional[str]:
        logger.warning("`info.filename()` is deprecated, use `info['_filename']`")
        return self.raw.get("_filename")

    def itag(self) -> Optional[str]:
        logger.warning("`info.itag()` is deprecated, use `info['format_id']`")
        return self.raw.get("format_id")

    def resolution(self) -> Optional[str]:
        logger.warning("`info.resolution()` is deprecated, use `info['format']`")
        fmt = self.raw.get("format")
        if not isinstance(fmt, str):
            return None
        parts = fmt.split(" - ")
        if len(parts) < 2:
            return None
        return parts[1]


class ItemOutcome(BaseModel):
    """Success (``data`` set) or failure (``error`` set) for one requested URL."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    url: str
    data: Optional[VideoInfo] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_payload(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "ok": self.ok,
            "error": str(self.error) if self.error else None,
            "data": self.data.raw if self.data else None,
        }


class FormatSummary(BaseModel):
    id: Optional[str] = None
    itag: Optional[str] = None
    filetype: Optional[str] = None
    resolution: Optional[str] = None


class CallResult(BaseModel):
    """Everything one finished call produced; built by the service layer."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    items: List[ItemOutcome] = Field(default_factory=list)
    stdout_lines: List[str] = Field(default_factory=list)
    transcript: List[str] = Field(default_factory=list)
    error: Optional[Exception] = None
    returncode: Optional[int] = None
