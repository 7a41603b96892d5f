"""
Ordered track list: file loading, breakpoint edits, drag reordering and preview handles.
"""

import asyncio
import dataclasses
import logging
import mimetypes
import time
import uuid
from collections.abc import Callable, Iterable, Iterator
from pathlib import Path

from pydub.utils import mediainfo

from . import breakpoints as bp
from .errors import DurationProbeError, ValidationError
from .models import Track

logger = logging.getLogger("cutlab")

Prober = Callable[[Path], float]
Observer = Callable[[tuple[Track, ...]], None]


def probe_duration(path: Path) -> float:
    """Ask ffprobe (through pydub) for a media file's duration in seconds."""
    try:
        info = mediainfo(str(path))
        duration = float(info["duration"])
    except (OSError, KeyError, ValueError) as e:
        raise DurationProbeError(f"Could not read duration of {path.name}: {e}") from e
    if duration <= 0:
        raise DurationProbeError(f"Could not read duration of {path.name}: got {duration}")
    return duration


def _new_track_id() -> str:
    return f"file-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


class PreviewRegistry:
    """Local playback handles, one per track. Only the owning TrackList revokes them."""

    def __init__(self) -> None:
        self._handles: dict[str, Path] = {}

    def __len__(self) -> int:
        return len(self._handles)

    def create(self, path: Path) -> str:
        url = f"preview://{uuid.uuid4().hex}"
        self._handles[url] = path
        return url

    def resolve(self, url: str) -> Path | None:
        return self._handles.get(url)

    def revoke(self, url: str) -> None:
        self._handles.pop(url, None)

    def revoke_all(self) -> None:
        self._handles.clear()


class TrackList:
    """
    The editor's tracks, in display order.

    Tracks are immutable records; every edit swaps in a new tuple and
    notifies observers exactly once, so nobody sees a half-applied change.
    """

    def __init__(self, prober: Prober = probe_duration) -> None:
        self._prober = prober
        self._tracks: tuple[Track, ...] = ()
        self._observers: list[Observer] = []
        self.previews = PreviewRegistry()
        self.dragged_index: int | None = None

    def __len__(self) -> int:
        return len(self._tracks)

    def __iter__(self) -> Iterator[Track]:
        return iter(self._tracks)

    def __enter__(self) -> "TrackList":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def tracks(self) -> tuple[Track, ...]:
        return self._tracks

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register `observer`; returns a function that unregisters it."""
        self._observers.append(observer)
        return lambda: self._observers.remove(observer)

    def _commit(self, tracks: tuple[Track, ...]) -> None:
        self._tracks = tracks
        for observer in list(self._observers):
            observer(tracks)

    def index_of(self, track_id: str) -> int:
        for i, track in enumerate(self._tracks):
            if track.id == track_id:
                return i
        raise ValidationError(f"Unknown track {track_id}")

    def get(self, track_id: str) -> Track:
        return self._tracks[self.index_of(track_id)]

    def update(self, track_id: str, **changes) -> Track:
        """Replace one track's fields and commit."""
        i = self.index_of(track_id)
        track = dataclasses.replace(self._tracks[i], **changes)
        self._commit(self._tracks[:i] + (track,) + self._tracks[i + 1 :])
        return track

    # Structure

    async def add_tracks(self, paths: Iterable[str | Path]) -> list[Track]:
        """
        Probe every file's duration and append the new tracks in input order.

        If any probe fails the whole batch is dropped and the error propagates.
        """
        paths = [Path(p) for p in paths]
        for path in paths:
            if not path.is_file():
                raise ValidationError(f"No such file: {path}")

        durations = await asyncio.gather(*(asyncio.to_thread(self._prober, p) for p in paths))

        new_tracks = []
        for path, duration in zip(paths, durations):
            content_type, _ = mimetypes.guess_type(path.name)
            new_tracks.append(
                Track(
                    id=_new_track_id(),
                    path=path,
                    file_name=path.name,
                    duration=duration,
                    content_type=content_type or "audio/mpeg",
                    preview_url=self.previews.create(path),
                )
            )
            logger.debug("Loaded %s (%.3fs)", path.name, duration)

        self._commit(self._tracks + tuple(new_tracks))
        return new_tracks

    def remove_track(self, track_id: str) -> None:
        track = self.get(track_id)
        if track.uploading:
            raise ValidationError(f"{track.file_name} is uploading and cannot be removed")
        self.previews.revoke(track.preview_url)
        self._commit(tuple(t for t in self._tracks if t.id != track_id))

    def reorder(self, from_index: int, to_index: int) -> None:
        """Move the track at `from_index` so it ends up at `to_index`."""
        n = len(self._tracks)
        if not (0 <= from_index < n and 0 <= to_index < n):
            raise ValidationError(f"Reorder indices out of range: {from_index} -> {to_index}")
        if from_index == to_index:
            return
        tracks = list(self._tracks)
        moved = tracks.pop(from_index)
        tracks.insert(to_index, moved)
        self._commit(tuple(tracks))

    def start_drag(self, index: int) -> None:
        self.dragged_index = index

    def drag_over(self, index: int) -> None:
        """Called on every pointer-over event; the dragged track follows the pointer."""
        if self.dragged_index is None or self.dragged_index == index:
            return
        self.reorder(self.dragged_index, index)
        self.dragged_index = index

    def end_drag(self) -> None:
        self.dragged_index = None

    # Breakpoints

    def _editable(self, track_id: str) -> Track:
        track = self.get(track_id)
        if track.uploading or track.uploaded:
            raise ValidationError(f"{track.file_name} is {track.status.value}; breakpoints are locked")
        return track

    def add_breakpoint(self, track_id: str, t: float) -> Track:
        track = self._editable(track_id)
        points = bp.add_breakpoint(track.breakpoints, t, track.duration)
        if points == track.breakpoints:
            return track
        return self.update(track_id, breakpoints=points)

    def remove_breakpoint(self, track_id: str, t: float) -> Track:
        track = self._editable(track_id)
        points = bp.remove_breakpoint(track.breakpoints, t)
        if points == track.breakpoints:
            return track
        return self.update(track_id, breakpoints=points)

    def even_split(self, track_id: str, count: int) -> Track:
        """Replace all breakpoints with `count` evenly spaced ones."""
        track = self._editable(track_id)
        if count <= 0:
            return track
        return self.update(track_id, breakpoints=bp.even_split(track.duration, count))

    def update_current_time(self, track_id: str, t: float) -> Track:
        return self.update(track_id, current_time=t)

    def add_breakpoint_at_cursor(self, track_id: str) -> Track:
        return self.add_breakpoint(track_id, self.get(track_id).current_time)

    # Summary / teardown

    def summary(self) -> dict[str, float]:
        return {
            "tracks": len(self._tracks),
            "duration": sum(t.duration for t in self._tracks),
            "breakpoints": sum(len(t.breakpoints) for t in self._tracks),
        }

    def close(self) -> None:
        """Release every preview handle."""
        self.previews.revoke_all()
