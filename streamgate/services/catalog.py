from __future__ import annotations

"""
Video catalog lookup.

The gateway only needs `get_video(video_id) -> VideoRecord | None`; catalog
CRUD lives elsewhere. `InMemoryCatalog` backs local development and tests and
can be seeded from a JSON file (`CATALOG_FILE`) holding either a list of
records or an object keyed by id:

    [{"id": "65f1...", "videoUrl": "videos/65f1.../master.m3u8", "courseId": "c1"}]
"""

import json
import logging
from pathlib import Path
from typing import Dict, Iterable, Optional, Protocol, Union

from streamgate.schemas.video import VideoRecord

logger = logging.getLogger(__name__)


class Catalog(Protocol):
    async def get_video(self, video_id: str) -> Optional[VideoRecord]: ...


class InMemoryCatalog:
    """Dict-backed catalog. Records are frozen, so sharing them is safe."""

    def __init__(self, videos: Iterable[VideoRecord] = ()) -> None:
        self._videos: Dict[str, VideoRecord] = {v.id: v for v in videos}

    async def get_video(self, video_id: str) -> Optional[VideoRecord]:
        return self._videos.get(video_id)

    def __len__(self) -> int:
        return len(self._videos)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "InMemoryCatalog":
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        if isinstance(raw, dict):
            items = [{"id": k, **v} for k, v in raw.items()]
        elif isinstance(raw, list):
            items = raw
        else:
            raise ValueError(f"{path}: expected a JSON list or object of video records")
        catalog = cls(VideoRecord.model_validate(item) for item in items)
        logger.info("catalog seeded from %s (%d videos)", path, len(catalog))
        return catalog


__all__ = ["Catalog", "InMemoryCatalog"]
