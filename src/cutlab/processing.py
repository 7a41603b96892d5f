"""
Client for the external video processing API.

Audio decoding, slicing and stitching all happen on the other side of this
API; here we only build the request bodies and interpret success/failure.
"""

import logging
from typing import Any

import httpx

from .config import Settings
from .errors import ExternalApiError, NetworkError

logger = logging.getLogger("cutlab")


def api_error_message(resp: httpx.Response) -> str:
    """Message from a failed response: body `detail`/`message` if present, else the status text."""
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("message") or body.get("error")
        if detail:
            return detail if isinstance(detail, str) else str(detail)
    return resp.reason_phrase or f"HTTP {resp.status_code}"


class ProcessingClient:
    """Calls `/video/process-and-store` and `/video/replace-chunk`."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> "ProcessingClient":
        return cls(settings.api_url, timeout=settings.http_timeout, transport=transport)

    async def __aenter__(self) -> "ProcessingClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _post(self, path: str, payload: dict[str, Any]) -> Any:
        logger.debug("POST %s %s", path, payload)
        try:
            resp = await self._client.post(path, json=payload)
        except httpx.TransportError as e:
            logger.error("Processing API unreachable (%s): %s", path, e)
            raise NetworkError(f"Processing API unreachable: {e}") from e
        if resp.is_error:
            msg = api_error_message(resp)
            logger.error("Processing API error %d on %s: %s", resp.status_code, path, msg)
            raise ExternalApiError(f"API error: {msg}", status_code=resp.status_code)
        try:
            return resp.json()
        except ValueError:
            return {}

    async def process_and_store(
        self,
        data: list[dict[str, Any]],
        *,
        combine_videos: bool = False,
        output_dir: str = "output_videos",
    ) -> Any:
        """
        Ask the service to slice every uploaded original at its breakpoints.

        `data` items are `{"supabase_url": ..., "breakpoints": [...]}`.
        """
        payload = {"data": data, "combine_videos": combine_videos, "output_dir": output_dir}
        result = await self._post("/video/process-and-store", payload)
        logger.info("Submitted %d track(s) for processing", len(data))
        return result

    async def replace_chunk(
        self, *, custom_video_url: str, chunk_video_url: str, video_id: str, chunk_index: int
    ) -> Any:
        """Ask the service to swap one produced chunk for a custom clip."""
        payload = {
            "custom_video_url": custom_video_url,
            "chunk_video_url": chunk_video_url,
            "video_id": video_id,
            "chunk_index": chunk_index,
        }
        result = await self._post("/video/replace-chunk", payload)
        logger.info("Requested replacement of chunk %d of video %s", chunk_index, video_id)
        return result
