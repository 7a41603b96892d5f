"""
Tests for per-track saves and project submission.
"""

import asyncio
import json

import httpx
import pytest

from cutlab.coordinator import UploadCoordinator
from cutlab.errors import (
    ExternalApiError,
    StorageError,
    UploadInProgressError,
    ValidationError,
)
from cutlab.models import UploadResult, UploadStatus
from cutlab.storage import StorageClient
from cutlab.tracks import TrackList
from cutlab.upload_client import DirectUploader


class RecordingUploader:
    """Stores every upload; can fail chosen files or hold uploads until released."""

    def __init__(self, fail: set[str] | None = None, hold: bool = False):
        self.fail = fail or set()
        self.calls: list[tuple[str, bytes, str, dict]] = []
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.hold = hold

    async def upload(self, file_name, data, content_type, metadata_json):
        self.calls.append((file_name, data, content_type, json.loads(metadata_json)))
        self.started.set()
        if self.hold:
            await self.release.wait()
        if file_name in self.fail:
            raise StorageError(f"Failed to upload {file_name}")
        return UploadResult(
            key=f"audio/original-{len(self.calls)}.mp3",
            url=f"https://cdn.test/{file_name}",
        )


def make(audio_files, processing_api, uploader):
    tracks = TrackList(prober=lambda path: 120.0 if path.name == "intro.mp3" else 60.0)
    notes = []
    coordinator = UploadCoordinator(
        tracks, uploader, processing_api.client(), notify=notes.append
    )
    return tracks, coordinator, notes


def test_save_track_uploads_metadata_and_chunks(audio_files, processing_api):
    async def scenario():
        uploader = RecordingUploader()
        tracks, coordinator, notes = make(audio_files, processing_api, uploader)
        (track,) = await tracks.add_tracks(audio_files[:1])
        tracks.add_breakpoint(track.id, 30.0)
        tracks.add_breakpoint(track.id, 90.0)

        saved = await coordinator.save_track(track.id)
        return saved, uploader, notes

    saved, uploader, notes = asyncio.run(scenario())

    assert saved.status is UploadStatus.UPLOADED
    assert saved.storage_url == "https://cdn.test/intro.mp3"
    assert saved.storage_key.startswith("audio/original-")
    assert [(c.start, c.end) for c in saved.chunks] == [(0.0, 30.0), (30.0, 90.0), (90.0, 120.0)]
    name, data, _, metadata = uploader.calls[0]
    assert name == "intro.mp3"
    assert data == b"ID3intro.mp3"
    assert metadata == {"fileName": "intro.mp3", "duration": 120.0, "breakpoints": [30.0, 90.0]}
    assert notes[-1].title == "File uploaded successfully"


def test_save_without_breakpoints_single_chunk(audio_files, processing_api):
    async def scenario():
        tracks, coordinator, _ = make(audio_files, processing_api, RecordingUploader())
        (track,) = await tracks.add_tracks(audio_files[1:2])
        return await coordinator.save_track(track.id)

    saved = asyncio.run(scenario())

    assert len(saved.chunks) == 1
    assert (saved.chunks[0].start, saved.chunks[0].end) == (0.0, 60.0)


def test_save_uploaded_track_is_noop(audio_files, processing_api):
    async def scenario():
        uploader = RecordingUploader()
        tracks, coordinator, _ = make(audio_files, processing_api, uploader)
        (track,) = await tracks.add_tracks(audio_files[:1])
        await coordinator.save_track(track.id)
        await coordinator.save_track(track.id)
        return uploader

    assert len(asyncio.run(scenario()).calls) == 1


def test_failed_save_reverts_to_local(audio_files, processing_api):
    async def scenario():
        tracks, coordinator, notes = make(
            audio_files, processing_api, RecordingUploader(fail={"intro.mp3"})
        )
        (track,) = await tracks.add_tracks(audio_files[:1])
        with pytest.raises(StorageError):
            await coordinator.save_track(track.id)
        return tracks.get(track.id), notes

    track, notes = asyncio.run(scenario())

    assert track.status is UploadStatus.LOCAL
    assert track.chunks == ()
    assert notes[-1].variant == "destructive"
    assert "intro.mp3" in notes[-1].description


def test_missing_file_reported_as_validation_error(audio_files, processing_api):
    async def scenario():
        tracks, coordinator, _ = make(audio_files, processing_api, RecordingUploader())
        (track,) = await tracks.add_tracks(audio_files[:1])
        audio_files[0].unlink()
        with pytest.raises(ValidationError, match="No file provided"):
            await coordinator.save_track(track.id)
        return tracks.get(track.id)

    assert asyncio.run(scenario()).status is UploadStatus.LOCAL


def test_submit_uploads_pending_then_calls_api(audio_files, processing_api):
    async def scenario():
        uploader = RecordingUploader()
        tracks, coordinator, notes = make(audio_files, processing_api, uploader)
        added = await tracks.add_tracks(audio_files)
        tracks.add_breakpoint(added[0].id, 30.0)
        await coordinator.save_track(added[0].id)
        result = await coordinator.submit()
        return result, uploader, coordinator, notes

    result, uploader, coordinator, notes = asyncio.run(scenario())

    assert result == {"success": True}
    assert len(uploader.calls) == 3
    path, body = processing_api.calls[0]
    assert path == "/video/process-and-store"
    assert body == {
        "data": [
            {"supabase_url": "https://cdn.test/intro.mp3", "breakpoints": [30.0]},
            {"supabase_url": "https://cdn.test/verse.mp3", "breakpoints": []},
            {"supabase_url": "https://cdn.test/outro.wav", "breakpoints": []},
        ],
        "combine_videos": False,
        "output_dir": "output_videos",
    }
    assert coordinator.last_payload == body
    assert not coordinator.submitting
    assert notes[-1].title == "Project submitted successfully"


def test_submit_while_uploading_rejected(audio_files, processing_api):
    """Submitting mid-upload fails before the processing API is touched."""

    async def scenario():
        uploader = RecordingUploader(hold=True)
        tracks, coordinator, notes = make(audio_files, processing_api, uploader)
        added = await tracks.add_tracks(audio_files[:2])
        pending = asyncio.create_task(coordinator.save_track(added[0].id))
        await uploader.started.wait()
        assert tracks.get(added[0].id).uploading

        with pytest.raises(UploadInProgressError, match="wait for all files"):
            await coordinator.submit()

        uploader.release.set()
        await pending
        return notes

    notes = asyncio.run(scenario())

    assert processing_api.calls == []
    assert any(n.title == "Error submitting project" for n in notes)


def test_submit_with_failed_upload_skips_api(audio_files, processing_api):
    async def scenario():
        uploader = RecordingUploader(fail={"verse.mp3"})
        tracks, coordinator, _ = make(audio_files, processing_api, uploader)
        await tracks.add_tracks(audio_files)
        with pytest.raises(ValidationError, match="1 of 3"):
            await coordinator.submit()
        return tracks, uploader

    tracks, uploader = asyncio.run(scenario())

    assert processing_api.calls == []
    assert len(uploader.calls) == 3
    statuses = {t.file_name: t.status for t in tracks}
    assert statuses == {
        "intro.mp3": UploadStatus.UPLOADED,
        "verse.mp3": UploadStatus.LOCAL,
        "outro.wav": UploadStatus.UPLOADED,
    }


def test_submit_surfaces_api_error(audio_files, processing_api):
    processing_api.status = 422
    processing_api.body = {"detail": "bad breakpoints"}

    async def scenario():
        tracks, coordinator, _ = make(audio_files, processing_api, RecordingUploader())
        await tracks.add_tracks(audio_files[:1])
        with pytest.raises(ExternalApiError, match="bad breakpoints") as info:
            await coordinator.submit()
        return info.value

    error = asyncio.run(scenario())
    assert error.status_code == 422


def test_submit_without_tracks(audio_files, processing_api):
    async def scenario():
        _, coordinator, _ = make(audio_files, processing_api, RecordingUploader())
        with pytest.raises(ValidationError):
            await coordinator.submit()

    asyncio.run(scenario())


def test_garbled_storage_reply_leaves_track_retryable(audio_files, processing_api):
    """A 200 with an HTML body fails the save and the track can be submitted again."""

    def gateway_page(request):
        return httpx.Response(200, text="<html>gateway</html>")

    async def scenario():
        storage = StorageClient(
            "https://proj.supabase.co",
            "anon-key",
            "audio-files",
            transport=httpx.MockTransport(gateway_page),
        )
        tracks, coordinator, notes = make(audio_files, processing_api, DirectUploader(storage))
        (track,) = await tracks.add_tracks(audio_files[:1])
        with pytest.raises(StorageError, match="invalid response"):
            await coordinator.save_track(track.id)
        status = tracks.get(track.id).status
        with pytest.raises(ValidationError, match="1 of 1"):
            await coordinator.submit()
        await storage.aclose()
        return status, notes

    status, notes = asyncio.run(scenario())

    assert status is UploadStatus.LOCAL
    assert notes[0].title == "Upload failed"
    assert processing_api.calls == []


def test_unexpected_uploader_error_reverts_track(audio_files, processing_api):
    class BrokenUploader:
        async def upload(self, file_name, data, content_type, metadata_json):
            raise KeyError("url")

    async def scenario():
        tracks, coordinator, notes = make(audio_files, processing_api, BrokenUploader())
        (track,) = await tracks.add_tracks(audio_files[:1])
        with pytest.raises(KeyError):
            await coordinator.save_track(track.id)
        return tracks.get(track.id), notes

    track, notes = asyncio.run(scenario())

    assert track.status is UploadStatus.LOCAL
    assert notes[-1].variant == "destructive"


def test_submit_output_dir_override(audio_files, processing_api):
    async def scenario():
        tracks, coordinator, _ = make(audio_files, processing_api, RecordingUploader())
        await tracks.add_tracks(audio_files[:1])
        await coordinator.submit(combine_videos=True, output_dir="renders")
        return coordinator

    coordinator = asyncio.run(scenario())

    _, body = processing_api.calls[0]
    assert body["output_dir"] == "renders"
    assert body["combine_videos"] is True
    assert coordinator.output_dir == "output_videos"
