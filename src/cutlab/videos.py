"""
Produced videos: listing, status, custom replacement clips and chunk review.
"""

import logging
import mimetypes
import time
from datetime import datetime, timezone

from .chunk_grid import CHUNKS_PER_PAGE, ChunkGrid
from .errors import ValidationError
from .models import CustomVideo, Video
from .storage import StorageClient

logger = logging.getLogger("cutlab")


class VideoLibrary:
    def __init__(self, storage: StorageClient, page_size: int = CHUNKS_PER_PAGE) -> None:
        self.storage = storage
        self.page_size = page_size

    @property
    def storage_base(self) -> str:
        """Prefix every public object URL starts with."""
        return f"{self.storage.base_url}/storage/v1/object/public/"

    async def list_videos(self) -> list[Video]:
        """All videos, newest first."""
        return await self.storage.select_videos(order_by="created_at", ascending=False)

    async def check_status(self, video_id: str) -> Video:
        return await self.storage.get_video(video_id)

    async def open_editor(self, video_id: str) -> ChunkGrid:
        video = await self.storage.get_video(video_id)
        grid = ChunkGrid.from_video(video, self.storage_base, self.page_size)
        logger.debug("Video %s: %d valid chunk(s)", video_id, len(grid.chunks))
        return grid

    async def list_custom_videos(self, video_id: str) -> list[CustomVideo]:
        entries = await self.storage.list_objects(video_id)
        return [
            CustomVideo(
                id=str(entry.get("id") or entry["name"]),
                url=self.storage.get_public_url(f"{video_id}/{entry['name']}"),
                name=entry["name"],
                created_at=entry.get("created_at") or datetime.now(timezone.utc).isoformat(),
            )
            for entry in entries
            if entry.get("name")
        ]

    async def upload_custom_video(
        self, video_id: str, file_name: str, data: bytes, content_type: str | None = None
    ) -> CustomVideo:
        """Store a replacement clip under `<video_id>/<millis>-<name>`."""
        if not file_name:
            raise ValidationError("No file provided")
        stamp = int(time.time() * 1000)
        key = f"{video_id}/{stamp}-{file_name}"
        if content_type is None:
            content_type = mimetypes.guess_type(file_name)[0] or "application/octet-stream"

        logger.info("Uploading custom clip: name=%s size=%d key=%s", file_name, len(data), key)
        await self.storage.upload(key, data, content_type)
        return CustomVideo(
            id=str(stamp),
            url=self.storage.get_public_url(key),
            name=file_name,
            created_at=datetime.now(timezone.utc).isoformat(),
        )
