from .binary import YtdlBinary, resolve_ffmpeg, resolve_ytdl_binary
from .service import YtdlService

__all__ = ["YtdlService", "YtdlBinary", "resolve_ytdl_binary", "resolve_ffmpeg"]
