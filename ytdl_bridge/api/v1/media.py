from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from ytdl_bridge.config import settings
from ytdl_bridge.core.container import get_ytdl
from ytdl_bridge.models.schemas import InvocationOptions, SubtitleOptions

router = APIRouter(prefix="/media", tags=["Media"])


class MediaRequest(BaseModel):
    """
    Only typed options are accepted over HTTP; raw executable arguments
    (``--exec``, ``-o``, ``--config-location``...) are not reachable from here.
    """
    model_config = ConfigDict(extra="forbid")

    urls: List[str] = Field(..., min_length=1)
    format: Optional[str] = None
    no_playlist: bool = False
    subdir: Optional[str] = None  # relative to settings.DOWNLOAD_DIR

    def to_args(self) -> List[str]:
        args = []
        if self.format:
            # Single token so the value can never be read as another flag
            args.append(f"--format={self.format}")
        if self.no_playlist:
            args.append("--no-playlist")
        return args


class SubtitleRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    urls: List[str] = Field(..., min_length=1)
    auto: bool = False
    all_subs: bool = False
    lang: Optional[str] = None
    subdir: Optional[str] = None


def resolve_download_dir(subdir: Optional[str]) -> str:
    """
    Map a caller-supplied subdirectory onto the download root.

    Raises:
        ValueError: the path escapes ``settings.DOWNLOAD_DIR``.
    """
    root = Path(settings.DOWNLOAD_DIR).resolve()
    target = (root / subdir).resolve() if subdir else root
    if target != root and root not in target.parents:
        logger.warning(f"Rejected download directory outside {root}: {subdir}")
        raise ValueError(f"Directory must be inside the download root: {subdir}")
    target.mkdir(parents=True, exist_ok=True)
    return str(target)


@router.post("/info")
async def get_info(req: MediaRequest):
    """Metadata for each URL, in request order."""
    options = InvocationOptions(cwd=resolve_download_dir(req.subdir))
    outcomes = await get_ytdl().get_info(req.urls, req.to_args(), options)
    return {"items": [o.to_payload() for o in outcomes]}


@router.post("/download")
async def download(req: MediaRequest):
    """
    Download each URL into ``subdir`` below the download root.
    Blocks until the executable exits; long playlists belong in a background task.
    """
    options = InvocationOptions(cwd=resolve_download_dir(req.subdir))
    outcomes = await get_ytdl().download(req.urls, req.to_args(), options)
    return {"items": [o.to_payload() for o in outcomes]}


@router.post("/subtitles")
async def get_subtitles(req: SubtitleRequest):
    files = await get_ytdl().get_subs(
        req.urls,
        SubtitleOptions(
            auto=req.auto, all_subs=req.all_subs, lang=req.lang, cwd=resolve_download_dir(req.subdir)
        ),
    )
    return {"files": files}


@router.get("/extractors")
async def list_extractors(descriptions: bool = False):
    return {"extractors": await get_ytdl().get_extractors(descriptions)}
