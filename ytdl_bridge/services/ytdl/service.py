from typing import Callable, List, Optional, Sequence, Union

from loguru import logger

from ytdl_bridge.core.errors import YtdlError, YtdlItemError
from ytdl_bridge.models.schemas import (
    CallResult,
    FormatSummary,
    InvocationOptions,
    ItemOutcome,
    OutputMode,
    SubtitleOptions,
)

from .args_builder import build_argv, build_default_args
from .binary import YtdlBinary, resolve_ffmpeg, resolve_ytdl_binary
from .demux import Demultiplexer, ItemCallback
from .invoker import ProcessInvoker
from .retry import plan_retry

# (error, outcomes) -> None
CompleteCallback = Callable[[Optional[Exception], List[ItemOutcome]], None]
Urls = Union[str, Sequence[str], None]

SUBTITLE_LINE_PREFIX = "[info] Writing video subtitles to: "
ERROR_LINE_PREFIX = "ERROR: "
_UNSET = object()


def _as_list(urls: Urls) -> List[str]:
    if urls is None:
        return []
    if isinstance(urls, str):
        return [urls]
    return list(urls)


class YtdlService:
    """
    Client handle for the extraction executable.

    The executable (and the optional encoder) is resolved once, when the
    service is built, and reused for every call. Each call spawns one child
    process, plus at most one more for the subtitle retry.
    """

    def __init__(
        self,
        binary: Optional[YtdlBinary] = None,
        ffmpeg_path=_UNSET,
        invoker: Optional[ProcessInvoker] = None,
    ):
        self.binary = binary or resolve_ytdl_binary()
        self.ffmpeg_path: Optional[str] = resolve_ffmpeg() if ffmpeg_path is _UNSET else ffmpeg_path
        self.invoker = invoker or ProcessInvoker(self.binary)

    # ─── Public operations ───────────────────────────────────────

    async def download(
        self,
        urls: Urls,
        args: Optional[Sequence[str]] = None,
        options: Optional[InvocationOptions] = None,
        on_item: Optional[ItemCallback] = None,
        on_complete: Optional[CompleteCallback] = None,
    ) -> List[ItemOutcome]:
        """Download every URL, printing one JSON record per finished item."""
        defaults = build_default_args(OutputMode.PRINT_JSON, args, self.ffmpeg_path)
        return await self._call(urls, defaults, args, options, on_item, on_complete, OutputMode.PRINT_JSON)

    async def get_info(
        self,
        urls: Urls,
        args: Optional[Sequence[str]] = None,
        options: Optional[InvocationOptions] = None,
        on_item: Optional[ItemCallback] = None,
        on_complete: Optional[CompleteCallback] = None,
    ) -> List[ItemOutcome]:
        """Fetch metadata only; nothing is written to disk."""
        defaults = build_default_args(OutputMode.DUMP_JSON, args)
        return await self._call(urls, defaults, args, options, on_item, on_complete, OutputMode.DUMP_JSON)

    async def get_subs(self, urls: Urls, sub_options: Optional[SubtitleOptions] = None) -> List[str]:
        """
        Write subtitles next to the (skipped) download and return their paths.

        Raises:
            YtdlItemError: the executable reported an error for a URL. The
                paths written by the rest of the call are on ``error.files``.
        """
        sub_options = sub_options or SubtitleOptions()

        args = ["--skip-download", "--write-auto-sub" if sub_options.auto else "--write-sub"]
        if sub_options.all_subs:
            args.append("--all-subs")
        if sub_options.lang:
            args.append(f"--sub-lang={sub_options.lang}")
        if sub_options.suppress_warnings:
            args.append("--no-warnings")

        url_list = _as_list(urls)
        result = await self._invoke(url_list, args, [], InvocationOptions(cwd=sub_options.cwd), None, OutputMode.TEXT)
        self._raise_fatal(result)

        files = []
        first_error = None
        for line in result.transcript:
            if line.startswith(SUBTITLE_LINE_PREFIX):
                files.append(line[len(SUBTITLE_LINE_PREFIX):])
            elif line.startswith(ERROR_LINE_PREFIX) and first_error is None:
                first_error = line[len(ERROR_LINE_PREFIX):]

        if first_error is not None:
            raise YtdlItemError(first_error, url=url_list[0] if len(url_list) == 1 else "", files=files)
        return files

    async def get_extractors(self, descriptions: bool = False, options: Optional[InvocationOptions] = None) -> List[str]:
        """List supported extractors, or their descriptions."""
        args = ["--extractor-descriptions"] if descriptions else ["--list-extractors"]
        result = await self._invoke([], args, None, options or InvocationOptions(), None, OutputMode.TEXT)
        self._raise_fatal(result)
        return result.stdout_lines

    async def get_formats(self, urls: Urls, args: Optional[Sequence[str]] = None) -> List[FormatSummary]:
        """Deprecated: use ``get_info()`` and read ``info["formats"]``."""
        logger.warning("`get_formats()` is deprecated. Please use `get_info()`")

        formats: List[FormatSummary] = []
        for outcome in await self.get_info(urls, args):
            if not outcome.ok:
                raise outcome.error
            info = outcome.data
            for fmt in info.get("formats") or [info.raw]:
                formats.append(FormatSummary(
                    id=info.get("id"),
                    itag=fmt.get("format_id"),
                    filetype=fmt.get("ext"),
                    resolution=_format_resolution(fmt.get("format")),
                ))
        return formats

    async def execute(
        self,
        urls: Urls,
        args: Optional[Sequence[str]] = None,
        options: Optional[InvocationOptions] = None,
    ) -> List[str]:
        """Run with the caller's arguments only and return stdout lines."""
        result = await self._invoke(_as_list(urls), [], args, options or InvocationOptions(), None, OutputMode.TEXT)
        self._raise_fatal(result)
        return result.stdout_lines

    # ─── Pipeline ────────────────────────────────────────────────

    async def _call(
        self,
        urls: Urls,
        default_args: Sequence[str],
        extra_args: Optional[Sequence[str]],
        options: Optional[InvocationOptions],
        on_item: Optional[ItemCallback],
        on_complete: Optional[CompleteCallback],
        mode: OutputMode,
    ) -> List[ItemOutcome]:
        result = await self._invoke(
            _as_list(urls), default_args, extra_args, options or InvocationOptions(), on_item, mode
        )

        if result.error is not None:
            if on_complete is None:
                raise result.error
            on_complete(result.error, result.items)
            return result.items

        if on_complete:
            on_complete(None, result.items)
        return result.items

    async def _invoke(
        self,
        urls: List[str],
        default_args: Sequence[str],
        extra_args: Optional[Sequence[str]],
        options: InvocationOptions,
        on_item: Optional[ItemCallback],
        mode: OutputMode,
    ) -> CallResult:
        built = build_argv(urls, default_args, extra_args, options)
        demux = Demultiplexer(urls, built.argv, built.options, on_item, mode)

        try:
            returncode = await self.invoker.run(
                built.argv,
                demux.feed_stdout,
                demux.feed_stderr,
                cwd=built.options.cwd,
                limit=built.options.max_buffer_size,
                env=built.options.env,
            )
        except YtdlError as e:
            logger.error(f"Call failed: {e}")
            return CallResult(items=demux.items, stdout_lines=demux.stdout_lines, transcript=demux.transcript, error=e)

        if demux.retry_requested:
            retry_args, retry_options = plan_retry(extra_args, built.options)
            logger.info(f"Retrying without subtitle arguments: {retry_args}")
            return await self._invoke(urls, default_args, retry_args, retry_options, on_item, mode)

        if demux.dropped:
            logger.debug(f"Dropped {demux.dropped} record(s) past the last requested URL")

        return CallResult(
            items=demux.items,
            stdout_lines=demux.stdout_lines,
            transcript=demux.transcript,
            returncode=returncode,
        )

    @staticmethod
    def _raise_fatal(result: CallResult) -> None:
        if result.error is not None:
            raise result.error


def _format_resolution(fmt: Optional[str]) -> Optional[str]:
    # "137 - 1920x1080 (DASH video)" -> "1920x1080"
    if not fmt or " - " not in fmt:
        return None
    return fmt.split(" - ")[1].split(" (")[0]
