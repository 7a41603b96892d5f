"""
Upload coordination: per-track saves and whole-project submission.
"""

import asyncio
import json
import logging
from collections.abc import Callable
from typing import Any, Protocol

from tqdm.asyncio import tqdm

from .breakpoints import derive_chunks
from .errors import CutlabError, UploadInProgressError, ValidationError
from .models import Notification, Track, UploadResult, UploadStatus
from .processing import ProcessingClient
from .tracks import TrackList

logger = logging.getLogger("cutlab")

Notifier = Callable[[Notification], None]


class Uploader(Protocol):
    async def upload(
        self, file_name: str, data: bytes, content_type: str, metadata_json: str
    ) -> UploadResult: ...


def log_notification(note: Notification) -> None:
    """Default notifier: route user-facing messages to the log."""
    if note.variant == "destructive":
        logger.error("%s: %s", note.title, note.description)
    else:
        logger.info("%s: %s", note.title, note.description)


def build_metadata(track: Track) -> str:
    """The JSON stored next to an original upload."""
    return json.dumps(
        {
            "fileName": track.file_name,
            "duration": track.duration,
            "breakpoints": list(track.breakpoints),
        }
    )


class UploadCoordinator:
    """Moves tracks local -> uploading -> uploaded and hands the result to the processing API."""

    def __init__(
        self,
        tracks: TrackList,
        uploader: Uploader,
        processing: ProcessingClient,
        *,
        notify: Notifier = log_notification,
        output_dir: str = "output_videos",
    ) -> None:
        self.tracks = tracks
        self.uploader = uploader
        self.processing = processing
        self.notify = notify
        self.output_dir = output_dir
        self.submitting = False
        self.last_payload: dict[str, Any] | None = None

    async def _read(self, track: Track) -> bytes:
        try:
            return await asyncio.to_thread(track.path.read_bytes)
        except OSError as e:
            raise ValidationError(f"No file provided: {e}") from e

    async def save_track(self, track_id: str) -> Track:
        """
        Upload one track's original plus its breakpoint metadata.

        Saving an uploaded track does nothing. On failure the track goes
        back to `local` (retryable), the user is notified and the error
        propagates.
        """
        track = self.tracks.get(track_id)
        if track.uploaded:
            return track
        if track.uploading:
            raise UploadInProgressError(f"{track.file_name} is already uploading")

        self.tracks.update(track_id, status=UploadStatus.UPLOADING)
        try:
            chunks = derive_chunks(track.duration, track.breakpoints, track.id)
            data = await self._read(track)
            logger.info(
                "Uploading file: name=%s size=%d type=%s breakpoints=%d",
                track.file_name,
                len(data),
                track.content_type,
                len(track.breakpoints),
            )
            result = await self.uploader.upload(
                track.file_name, data, track.content_type, build_metadata(track)
            )
        except Exception as e:
            logger.error("Error processing file %s: %s", track.file_name, e)
            self.tracks.update(track_id, status=UploadStatus.LOCAL)
            self.notify(
                Notification(
                    "Upload failed",
                    f"Failed to upload {track.file_name}. {e}",
                    variant="destructive",
                )
            )
            raise

        saved = self.tracks.update(
            track_id,
            status=UploadStatus.UPLOADED,
            storage_key=result.key,
            storage_url=result.url,
            chunks=tuple(chunks),
        )
        self.notify(
            Notification(
                "File uploaded successfully",
                f"{track.file_name} has been uploaded with {len(track.breakpoints)} breakpoints.",
            )
        )
        return saved

    async def _try_save(self, track_id: str) -> CutlabError | None:
        try:
            await self.save_track(track_id)
        except CutlabError as e:
            return e
        return None

    async def upload_pending(self, progress: bool = False) -> None:
        """Upload every track not yet uploaded, concurrently and independently."""
        pending = [t.id for t in self.tracks if not t.uploaded]
        if not pending:
            return
        errors = await tqdm.gather(
            *(self._try_save(track_id) for track_id in pending),
            desc="Uploading tracks",
            disable=not progress,
        )
        failed = [e for e in errors if e is not None]
        if failed:
            raise ValidationError(
                f"{len(failed)} of {len(pending)} track(s) failed to upload: {failed[0]}"
            ) from failed[0]

    async def submit(
        self,
        *,
        combine_videos: bool = False,
        output_dir: str | None = None,
        progress: bool = False,
    ) -> Any:
        """
        Send every track's storage URL and breakpoints to the processing API.

        Refuses to start while any track is mid-upload; uploads whatever is
        still local first and only calls the API if all of those succeed.
        `output_dir` defaults to the coordinator's own.
        """
        output_dir = output_dir or self.output_dir
        self.submitting = True
        try:
            if not len(self.tracks):
                raise ValidationError("No tracks to submit")
            if any(t.uploading for t in self.tracks):
                raise UploadInProgressError()
            await self.upload_pending(progress=progress)
            payload_data = [
                {"supabase_url": t.storage_url, "breakpoints": list(t.breakpoints)}
                for t in self.tracks
            ]
            self.last_payload = {
                "data": payload_data,
                "combine_videos": combine_videos,
                "output_dir": output_dir,
            }
            result = await self.processing.process_and_store(
                payload_data, combine_videos=combine_videos, output_dir=output_dir
            )
        except CutlabError as e:
            logger.error("Error submitting project: %s", e)
            self.notify(Notification("Error submitting project", str(e), variant="destructive"))
            raise
        finally:
            self.submitting = False

        self.notify(
            Notification(
                "Project submitted successfully",
                "Your audio files and breakpoints have been sent for processing.",
            )
        )
        return result
