"""
Server-side storage of original audio files and their breakpoint metadata.
"""

import asyncio
import json
import logging
import secrets
import string
from datetime import datetime, timezone

from .errors import MetadataError, NetworkError, StorageError, ValidationError
from .models import StoredUpload, UploadResult
from .storage import StorageClient

logger = logging.getLogger("cutlab")

AUDIO_PREFIX = "audio"
DEFAULT_CONTENT_TYPE = "audio/mpeg"
_HASH_ALPHABET = string.ascii_lowercase + string.digits


def generate_random_hash(length: int = 32) -> str:
    """Random lowercase alphanumeric token used to name stored objects."""
    return "".join(secrets.choice(_HASH_ALPHABET) for _ in range(length))


def original_key(token: str, file_name: str) -> str:
    extension = file_name.rsplit(".", 1)[-1]
    return f"{AUDIO_PREFIX}/original-{token}.{extension}"


def metadata_key(token: str) -> str:
    return f"{AUDIO_PREFIX}/metadata-{token}.json"


async def _store_metadata(storage: StorageClient, key: str, metadata_json: str) -> None:
    try:
        json.loads(metadata_json)
    except ValueError as e:
        raise MetadataError(f"Breakpoint metadata is not valid JSON: {e}") from e
    try:
        await storage.upload(key, metadata_json.encode(), "application/json")
    except (StorageError, NetworkError) as e:
        raise MetadataError(str(e)) from e


async def upload_original_audio(
    storage: StorageClient,
    file_name: str,
    data: bytes,
    content_type: str | None = None,
    metadata_json: str | None = None,
) -> UploadResult:
    """
    Upload an original audio file and, alongside it, its breakpoint metadata.

    The bucket is created on first use. A failure to store the metadata is
    logged and otherwise ignored: the audio upload still counts as a success.
    """
    if not file_name:
        raise ValidationError("No file provided")

    token = generate_random_hash()
    key = original_key(token, file_name)

    await storage.ensure_bucket()

    logger.info(
        "Uploading audio file: name=%s size=%d type=%s key=%s",
        file_name,
        len(data),
        content_type,
        key,
    )
    await storage.upload(key, data, content_type or DEFAULT_CONTENT_TYPE)
    url = storage.get_public_url(key)

    if metadata_json:
        try:
            await _store_metadata(storage, metadata_key(token), metadata_json)
        except MetadataError as e:
            logger.warning("Failed to upload metadata, continuing with main file: %s", e)

    return UploadResult(key=key, url=url)


async def _load_metadata(storage: StorageClient, entry_name: str) -> dict:
    try:
        raw = await storage.download(f"{AUDIO_PREFIX}/{entry_name}")
        parsed = json.loads(raw)
    except (StorageError, NetworkError, ValueError) as e:
        logger.error("Error processing metadata file %s: %s", entry_name, e)
        return {}
    return parsed if isinstance(parsed, dict) else {}


async def list_uploads(storage: StorageClient, limit: int = 100) -> list[StoredUpload]:
    """
    Recover past uploads by pairing `original-<id>.<ext>` with `metadata-<id>.json`.

    Uploads whose metadata is missing or unreadable fall back to defaults.
    """
    entries = await storage.list_objects(AUDIO_PREFIX, limit=limit)
    names = {entry.get("name", "") for entry in entries}
    originals = [e for e in entries if e.get("name", "").startswith("original-")]

    async def describe(entry: dict) -> StoredUpload:
        name = entry["name"]
        file_id = name.split("original-", 1)[1].split(".")[0]
        meta_name = f"metadata-{file_id}.json"
        metadata = await _load_metadata(storage, meta_name) if meta_name in names else {}
        return StoredUpload(
            id=file_id,
            file_name=metadata.get("fileName") or name.replace("original-", "", 1),
            storage_url=storage.get_public_url(f"{AUDIO_PREFIX}/{name}"),
            created_at=entry.get("created_at") or datetime.now(timezone.utc).isoformat(),
            duration=float(metadata.get("duration") or 0),
            breakpoints=[float(b) for b in metadata.get("breakpoints") or []],
        )

    return list(await asyncio.gather(*(describe(e) for e in originals)))
