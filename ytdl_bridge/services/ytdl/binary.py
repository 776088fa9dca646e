"""
Locate the extraction executable and the optional encoder once at startup.
"""
import json
import shutil
from pathlib import Path
from typing import List, Optional

from loguru import logger
from pydantic import BaseModel, ConfigDict

from ytdl_bridge.config import Settings, settings as default_settings
from ytdl_bridge.core.errors import ExecutableNotFoundError

FALLBACK_EXECUTABLES = ("yt-dlp", "youtube-dl")


class YtdlBinary(BaseModel):
    """Resolved executable; immutable for the lifetime of a service."""
    model_config = ConfigDict(frozen=True)

    path: str
    interpreter: Optional[str] = None

    def command(self) -> List[str]:
        if self.interpreter:
            return [self.interpreter, self.path]
        return [self.path]


def _from_details_file(details_file: Path, bin_dir: Path) -> Optional[str]:
    if not details_file.exists():
        return None
    try:
        details = json.loads(details_file.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning(f"Unreadable details file {details_file}: {e}")
        return None
    if details.get("path"):
        return str(details["path"])
    if details.get("exec"):
        return str((bin_dir / details["exec"]).resolve())
    return None


def resolve_ytdl_binary(cfg: Optional[Settings] = None) -> YtdlBinary:
    """
    Resolve the executable from YTDL_PATH, the details file, then PATH.

    Raises:
        ExecutableNotFoundError: if no candidate exists on disk.
    """
    cfg = cfg or default_settings

    candidate = cfg.YTDL_PATH or _from_details_file(cfg.YTDL_DETAILS_FILE, cfg.BIN_DIR)
    if not candidate:
        for name in FALLBACK_EXECUTABLES:
            candidate = shutil.which(name)
            if candidate:
                break

    if not candidate or not Path(candidate).exists():
        searched = candidate or cfg.BIN_DIR
        raise ExecutableNotFoundError(f"Unable to locate youtube-dl executable (looked in {searched})")

    binary = YtdlBinary(path=str(candidate), interpreter=cfg.YTDL_INTERPRETER or None)
    logger.info(f"Using extraction executable: {' '.join(binary.command())}")
    return binary


def resolve_ffmpeg(cfg: Optional[Settings] = None) -> Optional[str]:
    """Return the encoder path, or None when it is not installed."""
    cfg = cfg or default_settings
    if not cfg.FFMPEG_PATH:
        return None
    if Path(cfg.FFMPEG_PATH).is_file():
        return cfg.FFMPEG_PATH
    found = shutil.which(cfg.FFMPEG_PATH)
    if not found:
        logger.debug(f"ffmpeg not found ({cfg.FFMPEG_PATH}); --ffmpeg-location will not be passed")
    return found
