"""
Tests for the endpoint and direct uploaders.
"""

import asyncio

import httpx
import pytest

from cutlab.errors import ExternalApiError, StorageError
from cutlab.upload_client import DirectUploader, EndpointUploader


def endpoint(handler) -> EndpointUploader:
    return EndpointUploader("http://localhost:8000", transport=httpx.MockTransport(handler))


def test_endpoint_upload_success():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"success": True, "key": "audio/original-x.mp3", "url": "https://u"})

    result = asyncio.run(endpoint(handler).upload("a.mp3", b"abc", "audio/mpeg", '{"breakpoints": []}'))

    assert result.key == "audio/original-x.mp3"
    assert result.url == "https://u"
    body = seen[0].content
    assert seen[0].url.path == "/api/upload"
    assert b'name="file"; filename="a.mp3"' in body
    assert b'name="breakpoints"' in body


def test_endpoint_upload_failure_body():
    def handler(request):
        return httpx.Response(500, json={"success": False, "error": "Failed to create storage bucket"})

    with pytest.raises(StorageError, match="storage bucket"):
        asyncio.run(endpoint(handler).upload("a.mp3", b"abc", "audio/mpeg", "{}"))


def test_endpoint_invalid_response_shape():
    def handler(request):
        return httpx.Response(200, json={"success": True})

    with pytest.raises(ExternalApiError, match="Invalid response"):
        asyncio.run(endpoint(handler).upload("a.mp3", b"abc", "audio/mpeg", "{}"))


def test_endpoint_non_json_error():
    def handler(request):
        return httpx.Response(502, text="Bad Gateway")

    with pytest.raises(ExternalApiError) as info:
        asyncio.run(endpoint(handler).upload("a.mp3", b"abc", "audio/mpeg", "{}"))
    assert info.value.status_code == 502


def test_direct_uploader(supabase):
    async def scenario():
        uploader = DirectUploader(supabase.client())
        try:
            return await uploader.upload("a.mp3", b"abc", "audio/mpeg", '{"breakpoints": [1]}')
        finally:
            await uploader.aclose()

    result = asyncio.run(scenario())
    assert result.key in supabase.objects
