"""
Review state for a produced video: paged chunk grid, drag-to-replace and playback toggle.
"""

import logging
import math
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from .errors import CutlabError, ValidationError
from .models import CustomVideo, Notification, Video, VideoChunk
from .processing import ProcessingClient

logger = logging.getLogger("cutlab")

CHUNKS_PER_PAGE = 10


def clean_chunk_url(url: str, storage_base: str) -> str:
    """
    Collapse URLs where the public storage base was prefixed twice.

    The path after the last occurrence is kept, minus its query string.
    """
    if not storage_base or url.count(storage_base) < 2:
        return url
    return url[url.rfind(storage_base) :].split("?")[0]


def chunks_from_urls(urls: Iterable[str], storage_base: str = "") -> list[VideoChunk]:
    """One VideoChunk per non-empty URL, indexed by position in the original list."""
    chunks = []
    for index, url in enumerate(urls):
        cleaned = clean_chunk_url(url or "", storage_base)
        if cleaned.strip():
            chunks.append(VideoChunk(id=f"chunk-{index}", url=cleaned, index=index))
    return chunks


class ChunkGrid:
    """Fixed-size pages over a video's chunks."""

    def __init__(
        self, video_id: str, chunks: Iterable[VideoChunk] = (), page_size: int = CHUNKS_PER_PAGE
    ) -> None:
        if page_size <= 0:
            raise ValidationError("page_size must be positive")
        self.video_id = video_id
        self.page_size = page_size
        self.current_page = 0
        self.chunks: list[VideoChunk] = []
        self.set_chunks(chunks)

    @classmethod
    def from_video(
        cls, video: Video, storage_base: str = "", page_size: int = CHUNKS_PER_PAGE
    ) -> "ChunkGrid":
        return cls(video.id, chunks_from_urls(video.video_urls, storage_base), page_size)

    @property
    def total_pages(self) -> int:
        return math.ceil(len(self.chunks) / self.page_size)

    def _clamp(self, page: int) -> int:
        return max(0, min(page, self.total_pages - 1))

    def set_chunks(self, chunks: Iterable[VideoChunk]) -> None:
        self.chunks = list(chunks)
        self.current_page = self._clamp(self.current_page)

    def page(self, i: int) -> list[VideoChunk]:
        start = i * self.page_size
        return self.chunks[start : start + self.page_size]

    @property
    def displayed(self) -> list[VideoChunk]:
        return self.page(self.current_page)

    def go_to(self, page: int) -> None:
        self.current_page = self._clamp(page)

    def next_page(self) -> None:
        if self.current_page < self.total_pages - 1:
            self.current_page += 1

    def prev_page(self) -> None:
        if self.current_page > 0:
            self.current_page -= 1

    def find(self, chunk_id: str) -> VideoChunk | None:
        return next((c for c in self.chunks if c.id == chunk_id), None)

    def mark_error(self, chunk_id: str) -> None:
        """Flag a chunk whose media failed to load."""
        chunk = self.find(chunk_id)
        if chunk is not None:
            chunk.has_error = True


@dataclass(frozen=True)
class DragItem:
    asset_id: str
    asset_url: str


class ReplaceDragSession:
    """
    Drag a custom clip onto a chunk to request its replacement.

    Only one drop target is active at a time, and every drop or drag end
    leaves the session idle again whatever the request outcome.
    """

    def __init__(
        self,
        grid: ChunkGrid,
        processing: ProcessingClient,
        notify: Callable[[Notification], None] | None = None,
    ) -> None:
        self.grid = grid
        self.processing = processing
        self.notify = notify or (lambda note: None)
        self.dragged: DragItem | None = None
        self.drop_target: str | None = None

    @property
    def is_dragging(self) -> bool:
        return self.dragged is not None

    def start(self, asset: CustomVideo) -> None:
        self.dragged = DragItem(asset_id=asset.id, asset_url=asset.url)

    def over(self, chunk_id: str) -> None:
        if self.dragged is None:
            return
        self.drop_target = chunk_id

    def leave(self) -> None:
        self.drop_target = None

    def end(self) -> None:
        self.dragged = None
        self.drop_target = None

    async def drop(self, chunk_id: str) -> Any:
        try:
            if self.dragged is None:
                raise ValidationError("Nothing is being dragged")
            target = self.grid.find(chunk_id)
            if target is None:
                raise ValidationError("Target chunk not found")
            result = await self.processing.replace_chunk(
                custom_video_url=self.dragged.asset_url,
                chunk_video_url=target.url,
                video_id=self.grid.video_id,
                chunk_index=target.index,
            )
        except CutlabError as e:
            logger.error("Error processing drop on %s: %s", chunk_id, e)
            self.notify(Notification("Error processing videos", str(e), variant="destructive"))
            raise
        finally:
            self.end()

        self.notify(
            Notification(
                "Request sent successfully",
                "The videos are being processed. This may take a few minutes.",
            )
        )
        return result


class PlaybackToggle:
    """At most one chunk plays at a time."""

    def __init__(
        self,
        on_play: Callable[[str], None] | None = None,
        on_pause: Callable[[str], None] | None = None,
    ) -> None:
        self.playing: str | None = None
        self._on_play = on_play or (lambda item_id: None)
        self._on_pause = on_pause or (lambda item_id: None)

    def toggle(self, item_id: str) -> None:
        if self.playing == item_id:
            self._on_pause(item_id)
            self.playing = None
            return
        if self.playing is not None:
            self._on_pause(self.playing)
        self._on_play(item_id)
        self.playing = item_id

    def ended(self, item_id: str) -> None:
        if self.playing == item_id:
            self.playing = None
