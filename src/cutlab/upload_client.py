"""
Uploaders used by the coordinator: through the /api/upload endpoint, or straight to storage.
"""

import logging

import httpx

from .config import Settings
from .errors import ExternalApiError, NetworkError, StorageError
from .models import UploadResult
from .processing import api_error_message
from .storage import StorageClient
from .uploads import upload_original_audio

logger = logging.getLogger("cutlab")


class EndpointUploader:
    """Posts multipart `file` + `breakpoints` to an upload endpoint."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"), timeout=timeout, transport=transport
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> "EndpointUploader":
        return cls(settings.upload_url, timeout=settings.http_timeout, transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def upload(
        self, file_name: str, data: bytes, content_type: str, metadata_json: str
    ) -> UploadResult:
        try:
            resp = await self._client.post(
                "/api/upload",
                files={"file": (file_name, data, content_type)},
                data={"breakpoints": metadata_json},
            )
        except httpx.TransportError as e:
            raise NetworkError(f"Upload endpoint unreachable: {e}") from e

        try:
            body = resp.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            if resp.is_error:
                raise ExternalApiError(api_error_message(resp), status_code=resp.status_code)
            raise ExternalApiError("Invalid response from upload endpoint", resp.status_code)

        if not body.get("success"):
            raise StorageError(body.get("error") or f"Upload failed ({resp.status_code})")
        if not body.get("key") or not body.get("url"):
            raise ExternalApiError("Invalid response from upload endpoint", resp.status_code)
        return UploadResult(key=body["key"], url=body["url"])


class DirectUploader:
    """Skips the endpoint and writes to storage in-process."""

    def __init__(self, storage: StorageClient) -> None:
        self.storage = storage

    async def aclose(self) -> None:
        await self.storage.aclose()

    async def upload(
        self, file_name: str, data: bytes, content_type: str, metadata_json: str
    ) -> UploadResult:
        return await upload_original_audio(
            self.storage, file_name, data, content_type=content_type, metadata_json=metadata_json
        )
