"""Shared test fixtures: an in-memory Supabase and a recording processing API."""

import json
from urllib.parse import unquote

import httpx
import pytest

from cutlab.config import Settings
from cutlab.processing import ProcessingClient
from cutlab.storage import StorageClient

SUPABASE_URL = "https://proj.supabase.co"
BUCKET = "audio-files"
OBJECT_PREFIX = f"/storage/v1/object/{BUCKET}/"


class FakeSupabase:
    """Enough of the storage + PostgREST endpoints to exercise the client."""

    def __init__(self, buckets=(BUCKET,)):
        self.buckets = [{"id": b, "name": b} for b in buckets]
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.videos: list[dict] = []
        self.requests: list[httpx.Request] = []
        self.fail_prefixes: set[str] = set()

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = unquote(request.url.path)

        if path == "/storage/v1/bucket":
            if request.method == "GET":
                return httpx.Response(200, json=self.buckets)
            body = json.loads(request.content)
            self.buckets.append({"id": body["id"], "name": body["name"]})
            return httpx.Response(200, json={"name": body["name"]})

        if path == f"/storage/v1/object/list/{BUCKET}":
            prefix = json.loads(request.content)["prefix"].rstrip("/") + "/"
            entries = [
                {"id": key, "name": key[len(prefix) :], "created_at": "2025-01-01T00:00:00Z"}
                for key in self.objects
                if key.startswith(prefix)
            ]
            return httpx.Response(200, json=entries)

        if path.startswith(OBJECT_PREFIX):
            key = path[len(OBJECT_PREFIX) :]
            if request.method == "POST":
                if any(key.startswith(p) for p in self.fail_prefixes):
                    return httpx.Response(400, json={"message": "quota exceeded"})
                self.objects[key] = (request.content, request.headers["content-type"])
                return httpx.Response(200, json={"Key": f"{BUCKET}/{key}"})
            if key in self.objects:
                return httpx.Response(200, content=self.objects[key][0])
            return httpx.Response(404, json={"message": "Object not found"})

        if path == "/rest/v1/videos":
            video_filter = request.url.params.get("id")
            if video_filter:
                wanted = video_filter.removeprefix("eq.")
                rows = [v for v in self.videos if v["id"] == wanted]
                if len(rows) != 1:
                    return httpx.Response(406, json={"message": "JSON object requested, multiple (or no) rows returned"})
                return httpx.Response(200, json=rows[0])
            rows = sorted(self.videos, key=lambda v: v["created_at"], reverse=True)
            return httpx.Response(200, json=rows)

        return httpx.Response(404, json={"message": f"no route {path}"})

    def client(self) -> StorageClient:
        return StorageClient(SUPABASE_URL, "anon-key", BUCKET, transport=httpx.MockTransport(self.handler))


class FakeProcessingApi:
    """Records every JSON body it receives and answers with `status`/`body`."""

    def __init__(self, status: int = 200, body: dict | None = None):
        self.status = status
        self.body = body if body is not None else {"success": True}
        self.calls: list[tuple[str, dict]] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append((request.url.path, json.loads(request.content)))
        return httpx.Response(self.status, json=self.body)

    def client(self) -> ProcessingClient:
        return ProcessingClient("http://api.test", transport=httpx.MockTransport(self.handler))


@pytest.fixture
def supabase():
    return FakeSupabase()


@pytest.fixture
def processing_api():
    return FakeProcessingApi()


@pytest.fixture
def settings():
    return Settings(
        supabase_url=SUPABASE_URL,
        supabase_key="anon-key",
        api_url="http://api.test",
    )


@pytest.fixture
def audio_files(tmp_path):
    """Three small fake audio files."""
    paths = []
    for name in ("intro.mp3", "verse.mp3", "outro.wav"):
        path = tmp_path / name
        path.write_bytes(b"ID3" + name.encode())
        paths.append(path)
    return paths
