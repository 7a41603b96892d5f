"""
Supabase Storage and PostgREST access over httpx.

The client is always constructed explicitly and handed to whoever needs it;
there is no module-level client.
"""

import logging
from typing import Any
from urllib.parse import quote

import httpx

from .config import Settings
from .errors import NetworkError, StorageError
from .models import Video

logger = logging.getLogger("cutlab")

BUCKET_SIZE_LIMIT = 100 * 1024 * 1024  # 100MB
CACHE_CONTROL = "3600"


def _error_message(resp: httpx.Response) -> str:
    """Pull a readable message out of a Supabase error body."""
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:300] or resp.reason_phrase
    if isinstance(body, dict):
        for field in ("message", "error", "msg", "details"):
            if body.get(field):
                return str(body[field])
    return resp.text[:300]


class StorageClient:
    """Thin async wrapper around the storage and table endpoints of one project."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        bucket: str,
        *,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"apikey": api_key, "Authorization": f"Bearer {api_key}"},
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> "StorageClient":
        return cls(
            settings.supabase_url,
            settings.supabase_key,
            settings.bucket,
            timeout=settings.http_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "StorageClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, action: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = await self._client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            logger.error("Storage %s failed: %s", action, e)
            raise NetworkError(f"Failed to {action}: {e}") from e
        if resp.is_error:
            msg = _error_message(resp)
            logger.error("Storage %s failed (%d): %s", action, resp.status_code, msg)
            raise StorageError(f"Failed to {action}: {msg}")
        return resp

    def _json(self, resp: httpx.Response, action: str, shape: type) -> Any:
        """Decode a success body, insisting on the expected top-level type."""
        try:
            body = resp.json()
        except ValueError as e:
            logger.error("Storage %s returned a non-JSON body: %s", action, resp.text[:300])
            raise StorageError(f"Failed to {action}: invalid response from storage") from e
        if body is None and shape is list:
            return []
        if not isinstance(body, shape):
            logger.error(
                "Storage %s returned %s, expected %s",
                action,
                type(body).__name__,
                shape.__name__,
            )
            raise StorageError(f"Failed to {action}: invalid response from storage")
        return body

    def _object_path(self, key: str) -> str:
        return f"/storage/v1/object/{self.bucket}/{quote(key, safe='/')}"

    # Buckets

    async def list_buckets(self) -> list[dict[str, Any]]:
        resp = await self._request("GET", "/storage/v1/bucket", "list storage buckets")
        return self._json(resp, "list storage buckets", list)

    async def create_bucket(
        self, name: str, *, public: bool = True, file_size_limit: int = BUCKET_SIZE_LIMIT
    ) -> None:
        await self._request(
            "POST",
            "/storage/v1/bucket",
            "create storage bucket",
            json={"id": name, "name": name, "public": public, "file_size_limit": file_size_limit},
        )
        logger.info("Created storage bucket %s", name)

    async def ensure_bucket(self) -> None:
        """Create the configured bucket (public) unless it already exists."""
        buckets = await self.list_buckets()
        if any(b.get("name") == self.bucket for b in buckets):
            return
        await self.create_bucket(self.bucket)

    # Objects

    async def upload(
        self, key: str, data: bytes, content_type: str, *, upsert: bool = True
    ) -> str:
        """Store `data` under `key`; returns the key."""
        await self._request(
            "POST",
            self._object_path(key),
            f"upload {key}",
            content=data,
            headers={
                "Content-Type": content_type,
                "Cache-Control": f"max-age={CACHE_CONTROL}",
                "x-upsert": "true" if upsert else "false",
            },
        )
        return key

    def get_public_url(self, key: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{quote(key, safe='/')}"

    async def list_objects(
        self,
        prefix: str,
        *,
        limit: int = 100,
        offset: int = 0,
        sort_column: str = "created_at",
        sort_order: str = "desc",
    ) -> list[dict[str, Any]]:
        """List entries directly under `prefix` (names are relative to it)."""
        resp = await self._request(
            "POST",
            f"/storage/v1/object/list/{self.bucket}",
            f"list {prefix}",
            json={
                "prefix": prefix,
                "limit": limit,
                "offset": offset,
                "sortBy": {"column": sort_column, "order": sort_order},
            },
        )
        return self._json(resp, f"list {prefix}", list)

    async def download(self, key: str) -> bytes:
        resp = await self._request("GET", self._object_path(key), f"download {key}")
        return resp.content

    # videos table

    async def select_videos(
        self, *, order_by: str = "created_at", ascending: bool = False
    ) -> list[Video]:
        direction = "asc" if ascending else "desc"
        resp = await self._request(
            "GET",
            "/rest/v1/videos",
            "fetch videos",
            params={"select": "*", "order": f"{order_by}.{direction}"},
        )
        return [Video.from_row(row) for row in self._json(resp, "fetch videos", list)]

    async def get_video(self, video_id: str) -> Video:
        resp = await self._request(
            "GET",
            "/rest/v1/videos",
            f"fetch video {video_id}",
            params={"select": "*", "id": f"eq.{video_id}"},
            headers={"Accept": "application/vnd.pgrst.object+json"},
        )
        return Video.from_row(self._json(resp, f"fetch video {video_id}", dict))
