"""
One-shot retry for videos without subtitles.

When the executable reports that a video has no subtitles, the call is run
again without the caller's subtitle arguments. The retried call carries
``subtitles_retried=True`` so it can never retry again.
"""
import re
from typing import List, Optional, Sequence, Tuple

from ytdl_bridge.models.schemas import InvocationOptions

NO_SUBS_RE = re.compile(r"WARNING: video doesn't have subtitles|no closed captions found")
SUBS_ARG_RE = re.compile(r"--write-sub|--write-srt|--srt-lang|--all-subs")
VALUE_FLAG = "--srt-lang"


def is_no_subtitles(line: str) -> bool:
    return bool(NO_SUBS_RE.search(line))


def strip_subtitle_args(args: Optional[Sequence[str]]) -> List[str]:
    """Drop subtitle arguments; a separate `--srt-lang LANG` value goes too."""
    cleaned: List[str] = []
    skip_value = False
    for arg in args or []:
        if skip_value:
            skip_value = False
            continue
        if SUBS_ARG_RE.search(arg):
            skip_value = arg == VALUE_FLAG
            continue
        cleaned.append(arg)
    return cleaned


def plan_retry(
    extra_args: Optional[Sequence[str]],
    options: InvocationOptions,
) -> Tuple[List[str], InvocationOptions]:
    """Return fresh (args, options) for the retry; inputs are not modified."""
    return (
        strip_subtitle_args(extra_args),
        options.model_copy(update={"subtitles_retried": True}),
    )
