"""
Line/record demultiplexer for one child process.

stdout and stderr are fed line by line, in arrival order, from reader tasks
running on the same event loop. A single cursor into the requested URL list
attributes every correlated event to the URL it belongs to:

* a stdout JSON record that parses becomes a success for ``urls[cursor]``
  and advances the cursor;
* a stdout record that fails to parse is reported to ``on_item`` only, and
  does NOT advance the cursor;
* a stderr line that is not a retry trigger, verbose debug output or a
  warning becomes a failure for ``urls[cursor]`` and advances the cursor.

Events arriving once the cursor is past the end of the URL list are dropped.
"""
import json
import re
from typing import Callable, List, Optional, Sequence

from loguru import logger

from ytdl_bridge.core.errors import YtdlItemError
from ytdl_bridge.models.schemas import InvocationOptions, ItemOutcome, OutputMode, VideoInfo

from .retry import is_no_subtitles
from .shim import parse_info

# (error, record, url) -> None
ItemCallback = Callable[[Optional[Exception], Optional[VideoInfo], str], None]

DEBUG_RE = re.compile(r"^\[debug\] ")
WARNING_RE = re.compile(r"^WARNING: ")
ERROR_PREFIX_LEN = len("ERROR: ")
VERBOSE_FLAG = "--verbose"


class Demultiplexer:
    def __init__(
        self,
        urls: Sequence[str],
        argv: Sequence[str],
        options: InvocationOptions,
        on_item: Optional[ItemCallback] = None,
        mode: OutputMode = OutputMode.PRINT_JSON,
    ):
        self.urls = list(urls)
        self.options = options
        self.on_item = on_item
        self.mode = mode
        self.verbose = VERBOSE_FLAG in argv

        self.cursor = 0
        self.items: List[ItemOutcome] = []
        self.stdout_lines: List[str] = []
        self.transcript: List[str] = []
        self.retry_requested = False
        self.dropped = 0

    @property
    def in_range(self) -> bool:
        return self.cursor < len(self.urls)

    @property
    def current_url(self) -> str:
        return self.urls[self.cursor]

    def feed_stdout(self, line: str) -> None:
        if self.retry_requested:
            return

        if self.mode == OutputMode.TEXT:
            self.stdout_lines.append(line)
            self.transcript.append(line)
            return

        if not line.strip():
            return

        if not self.in_range:
            self.dropped += 1
            logger.debug(f"Dropping stdout record past the last requested URL ({len(self.urls)} requested)")
            return

        url = self.current_url
        try:
            info = parse_info(json.loads(line), self.options.cwd)
        except Exception as e:
            logger.warning(f"Could not parse record for {url}: {e}")
            if self.on_item:
                self.on_item(e, None, url)
            return

        self.items.append(ItemOutcome(url=url, data=info))
        if self.on_item:
            self.on_item(None, info, url)
        self.cursor += 1

    def feed_stderr(self, line: str) -> None:
        if self.retry_requested or not line.strip():
            return

        if self.mode == OutputMode.TEXT:
            self.transcript.append(line)

        if not self.options.subtitles_retried and is_no_subtitles(line):
            logger.info(f"No subtitles available, scheduling one retry without subtitle arguments: {line}")
            self.retry_requested = True
            return

        if DEBUG_RE.match(line) and self.verbose:
            logger.debug(line)
            return

        if WARNING_RE.match(line):
            logger.warning(line)
            return

        if self.on_item and self.in_range:
            url = self.current_url
            error = YtdlItemError(line[ERROR_PREFIX_LEN:], url=url)
            self.items.append(ItemOutcome(url=url, error=error))
            self.on_item(error, None, url)
            self.cursor += 1
            return

        logger.debug(f"Unattributed stderr line: {line}")
