"""
Command-line interface for the breakpoint editor.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

import uvicorn

from .chunk_grid import ReplaceDragSession
from .config import Settings, load_settings
from .coordinator import UploadCoordinator, log_notification
from .display import (
    describe_track,
    format_date,
    format_summary,
    format_time,
    render_waveform,
)
from .errors import CutlabError, ValidationError
from .processing import ProcessingClient
from .server import create_app
from .storage import StorageClient
from .tracks import TrackList
from .upload_client import DirectUploader, EndpointUploader
from .uploads import list_uploads
from .videos import VideoLibrary

logger = logging.getLogger("cutlab")


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


def parse_breakpoints(value: str) -> list[float]:
    """'30,90.5' -> [30.0, 90.5]"""
    try:
        return [float(part) for part in value.split(",") if part.strip()]
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid breakpoint list: {value}") from e


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    ap = argparse.ArgumentParser(prog="cutlab", description="Audio breakpoint editor")
    ap.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    sub = ap.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the /api/upload endpoint")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    split = sub.add_parser("split", help="Load audio files, place breakpoints and upload them")
    split.add_argument("files", nargs="+")
    group = split.add_mutually_exclusive_group()
    group.add_argument(
        "--breakpoints",
        type=parse_breakpoints,
        default=[],
        help="Comma-separated breakpoint times in seconds, applied to every file",
    )
    group.add_argument("--even", type=int, default=0, help="Split every file into N+1 equal chunks")
    split.add_argument("--submit", action="store_true", help="Send the project for processing")
    split.add_argument("--combine", action="store_true", help="Ask the API to combine the videos")
    split.add_argument(
        "--direct", action="store_true", help="Upload straight to storage, not via /api/upload"
    )

    sub.add_parser("videos", help="List produced videos")
    sub.add_parser("uploads", help="List uploaded originals and their breakpoints")

    chunks = sub.add_parser("chunks", help="Show one page of a video's chunks")
    chunks.add_argument("video_id")
    chunks.add_argument("--page", type=int, default=1, help="1-based page number")

    replace = sub.add_parser("replace", help="Replace a chunk with a custom clip")
    replace.add_argument("video_id")
    replace.add_argument("chunk_index", type=int)
    replace.add_argument("clip", help="Path to the replacement clip")

    return ap.parse_args(argv)


async def run_split(args: argparse.Namespace, settings: Settings) -> None:
    processing = ProcessingClient.from_settings(settings)
    if args.direct:
        uploader = DirectUploader(StorageClient.from_settings(settings))
    else:
        uploader = EndpointUploader.from_settings(settings)

    with TrackList() as tracks:
        try:
            for track in await tracks.add_tracks(args.files):
                if args.even:
                    tracks.even_split(track.id, args.even)
                for t in args.breakpoints:
                    tracks.add_breakpoint(track.id, t)

            for track in tracks:
                print(describe_track(track))
                print(render_waveform(track))
            print(format_summary(tracks.summary()))

            coordinator = UploadCoordinator(
                tracks,
                uploader,
                processing,
                notify=log_notification,
                output_dir=settings.output_dir,
            )
            if args.submit:
                result = await coordinator.submit(combine_videos=args.combine, progress=True)
                print(json.dumps(result, indent=2))
            else:
                await coordinator.upload_pending(progress=True)
                for track in tracks:
                    print(f"{track.file_name} -> {track.storage_url}")
                    for chunk in track.chunks:
                        print(
                            f"  {chunk.id}: {format_time(chunk.start)} - "
                            f"{format_time(chunk.end)} ({chunk.duration:.2f}s)"
                        )
        finally:
            await uploader.aclose()
            await processing.aclose()


async def run_videos(settings: Settings) -> None:
    async with StorageClient.from_settings(settings) as storage:
        videos = await VideoLibrary(storage, settings.page_size).list_videos()
    if not videos:
        print("You haven't created any videos yet.")
    for video in videos:
        print(
            f"{video.id[:8]}  {format_date(video.created_at)}  {video.status or 'unknown'}  "
            f"{video.chunks_completed}/{video.chunks_total} chunks  "
            f"{len(video.breakpoints)} breakpoints"
        )


async def run_uploads(settings: Settings) -> None:
    async with StorageClient.from_settings(settings) as storage:
        uploads = await list_uploads(storage)
    for item in uploads:
        points = ", ".join(format_time(t) for t in item.breakpoints) or "none"
        print(f"{item.file_name} [{format_time(item.duration)}] breakpoints: {points}")
        print(f"  {item.storage_url}")


async def run_chunks(args: argparse.Namespace, settings: Settings) -> None:
    async with StorageClient.from_settings(settings) as storage:
        grid = await VideoLibrary(storage, settings.page_size).open_editor(args.video_id)
    grid.go_to(args.page - 1)
    print(f"Page {grid.current_page + 1} of {max(grid.total_pages, 1)}")
    for chunk in grid.displayed:
        print(f"  #{chunk.index}: {chunk.url}")


async def run_replace(args: argparse.Namespace, settings: Settings) -> None:
    clip = Path(args.clip)
    if not clip.is_file():
        raise ValidationError(f"No such file: {clip}")

    async with StorageClient.from_settings(settings) as storage, ProcessingClient.from_settings(
        settings
    ) as processing:
        library = VideoLibrary(storage, settings.page_size)
        grid = await library.open_editor(args.video_id)
        target = next((c for c in grid.chunks if c.index == args.chunk_index), None)
        if target is None:
            raise ValidationError(f"Video {args.video_id} has no chunk {args.chunk_index}")

        asset = await library.upload_custom_video(
            args.video_id, clip.name, await asyncio.to_thread(clip.read_bytes)
        )
        session = ReplaceDragSession(grid, processing, notify=log_notification)
        session.start(asset)
        session.over(target.id)
        result = await session.drop(target.id)
    print(json.dumps(result, indent=2))


def serve(args: argparse.Namespace, settings: Settings) -> None:
    uvicorn.run(create_app(settings), host=args.host, port=args.port)


async def main_async(args: argparse.Namespace, settings: Settings) -> None:
    if args.command == "split":
        await run_split(args, settings)
    elif args.command == "videos":
        await run_videos(settings)
    elif args.command == "uploads":
        await run_uploads(settings)
    elif args.command == "chunks":
        await run_chunks(args, settings)
    elif args.command == "replace":
        await run_replace(args, settings)


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    args = parse_args(argv)
    setup_logging(args.verbose)
    try:
        settings = load_settings()
        if args.command == "serve":
            serve(args, settings)
        else:
            asyncio.run(main_async(args, settings))
    except CutlabError as e:
        logger.error("%s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
