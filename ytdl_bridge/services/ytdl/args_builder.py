import re
from typing import List, NamedTuple, Optional, Sequence, Tuple
from urllib.parse import parse_qs, urlparse

from loguru import logger

from ytdl_bridge.config import settings
from ytdl_bridge.models.schemas import InvocationOptions, OutputMode

IGNORE_ERRORS_FLAG = "-i"
DEFAULT_FORMAT = "best"
YOUTUBE_URL_RE = re.compile(r"^(https?://)?(www\.)?(youtube\.com|youtu\.be)/")
CANONICAL_WATCH_URL = "http://www.youtube.com/watch?v={}"
PLAYLIST_MARKER = "playlist"

JSON_FLAGS = {
    OutputMode.PRINT_JSON: ["--print-json"],
    OutputMode.DUMP_JSON: ["--dump-json", "--no-warnings"],
    OutputMode.TEXT: [],
}


class BuiltArgs(NamedTuple):
    argv: List[str]
    options: InvocationOptions


def has_format_arg(args: Optional[Sequence[str]]) -> bool:
    """True if the caller already picked a format (-f, --format, --format=X)."""
    if not args:
        return False
    return any(a in ("-f", "--format") or a.startswith("--format=") for a in args)


def build_default_args(
    mode: OutputMode,
    args: Optional[Sequence[str]] = None,
    ffmpeg_path: Optional[str] = None,
) -> List[str]:
    """Default arguments for the JSON modes; TEXT callers pass their own."""
    defaults = list(JSON_FLAGS[mode])

    if not has_format_arg(args):
        defaults.extend(["-f", DEFAULT_FORMAT])

    # Only downloads need the encoder (merging, post-processing)
    if mode == OutputMode.PRINT_JSON and ffmpeg_path:
        defaults.extend(["--ffmpeg-location", ffmpeg_path])

    return defaults


def normalize_url(video: str) -> Tuple[str, bool]:
    """
    Rewrite YouTube URLs to their canonical form.

    Returns ``(url, is_playlist)``. ``watch?v=ID`` style URLs become the
    canonical watch URL; path style IDs (youtu.be/ID, /v/ID, /playlist) and
    anything unparseable are passed through as typed.
    """
    if not YOUTUBE_URL_RE.match(video):
        return video, False

    try:
        details = urlparse(video)
        video_id = parse_qs(details.query).get("v", [""])[0]
    except ValueError:
        return video, False

    if video_id:
        return CANONICAL_WATCH_URL.format(video_id), False

    path_id = re.sub(r"^v/", "", details.path[1:])
    return video, path_id == PLAYLIST_MARKER


def build_argv(
    urls: Sequence[str],
    default_args: Sequence[str],
    extra_args: Optional[Sequence[str]],
    options: InvocationOptions,
) -> BuiltArgs:
    """
    Assemble ``-i <defaults> <caller args> <urls>``.

    Never mutates its inputs. A playlist URL raises the output cap unless the
    caller set one; the returned options carry the effective cap.
    """
    argv = [IGNORE_ERRORS_FLAG, *default_args, *(extra_args or [])]
    max_buffer_size = options.max_buffer_size

    for video in urls:
        url, is_playlist = normalize_url(video)
        if is_playlist and options.max_buffer_size is None:
            max_buffer_size = settings.PLAYLIST_MAX_BUFFER_SIZE
            logger.debug(f"Playlist URL detected, raising output cap to {max_buffer_size} bytes")
        argv.append(url)

    effective = options.model_copy(
        update={"max_buffer_size": max_buffer_size or settings.MAX_BUFFER_SIZE}
    )
    return BuiltArgs(argv=argv, options=effective)
