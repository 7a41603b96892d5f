"""
HTTP upload endpoint (FastAPI).

POST /api/upload takes multipart fields `file` and `breakpoints` (a JSON
string) and answers `{success, key, url}` or `{success: false, error}`.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import asdict

from fastapi import FastAPI, File, Form, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings
from .errors import CutlabError, ValidationError
from .storage import StorageClient
from .uploads import list_uploads, upload_original_audio

logger = logging.getLogger("cutlab")


def _failure(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"success": False, "error": message}, status_code=status_code)


def create_app(settings: Settings, storage: StorageClient | None = None) -> FastAPI:
    """
    Build the app around one storage client.

    Pass `storage` to inject a preconfigured client; otherwise one is built
    from `settings` when the app starts and closed when it stops.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = storage is None
        app.state.storage = StorageClient.from_settings(settings) if owned else storage
        try:
            yield
        finally:
            if owned:
                await app.state.storage.aclose()

    app = FastAPI(title="cutlab upload API", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/health")
    def health():
        """Simple check to see if the API is running."""
        return {"status": "ok"}

    @app.post("/api/upload")
    async def upload(
        file: UploadFile | None = File(None),
        breakpoints: str | None = Form(None),
    ):
        if file is None or not file.filename:
            return _failure("No file provided", 400)

        data = await file.read()
        try:
            result = await upload_original_audio(
                app.state.storage,
                file.filename,
                data,
                content_type=file.content_type,
                metadata_json=breakpoints,
            )
        except ValidationError as e:
            return _failure(str(e), 400)
        except CutlabError as e:
            logger.error("Error uploading original audio %s: %s", file.filename, e)
            return _failure(str(e), 500)

        return {"success": True, "key": result.key, "url": result.url}

    @app.get("/api/uploads")
    async def uploads():
        try:
            items = await list_uploads(app.state.storage)
        except CutlabError as e:
            logger.error("Error fetching uploads: %s", e)
            return _failure(str(e), 500)
        return {"success": True, "videos": [asdict(item) for item in items]}

    @app.get("/api/videos/{video_id}")
    async def video_status(video_id: str):
        try:
            video = await app.state.storage.get_video(video_id)
        except CutlabError as e:
            logger.error("Error fetching video status for %s: %s", video_id, e)
            return _failure(str(e), 500)
        return {"success": True, "video": asdict(video)}

    return app
