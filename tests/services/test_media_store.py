# tests/services/test_media_store.py
import hashlib
from urllib.parse import parse_qs

import httpx
import pytest

from memory_vault.core.exceptions import UploadError, DeleteError
from memory_vault.services.media_store import (
    CloudinaryMediaStore,
    detect_image_format,
    ensure_supported_format,
)
from tests.conftest import make_image

BASE_URL = "https://cloudinary.test/v1_1"


def build_store(handler) -> CloudinaryMediaStore:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return CloudinaryMediaStore(
        client=client,
        cloud_name="demo",
        api_key="key123",
        api_secret="secret456",
        folder="memories",
        base_url=BASE_URL,
    )


def test_detect_image_format():
    assert detect_image_format(make_image("PNG")) == "png"
    assert detect_image_format(make_image("JPEG")) == "jpg"
    assert detect_image_format(make_image("GIF")) == "gif"
    assert detect_image_format(b"not an image") is None


def test_ensure_supported_format_accepts_jpeg_alias():
    assert ensure_supported_format(make_image("JPEG"), ["jpeg"]) == "jpg"


def test_ensure_supported_format_rejects_other_formats():
    with pytest.raises(UploadError):
        ensure_supported_format(make_image("BMP"))
    with pytest.raises(UploadError):
        ensure_supported_format(b"")
    with pytest.raises(UploadError):
        ensure_supported_format(make_image("GIF"), ["png"])


def test_signature_matches_cloudinary_scheme():
    store = build_store(lambda request: httpx.Response(200))
    expected = hashlib.sha1(b"public_id=memories/abc&timestamp=1700000000secret456").hexdigest()

    assert store.sign({"timestamp": 1700000000, "public_id": "memories/abc"}) == expected


@pytest.mark.asyncio
async def test_store_uploads_signed_request():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = request.content
        return httpx.Response(200, json={"secure_url": "https://res.test/memories/abc.png", "public_id": "memories/abc"})

    store = build_store(handler)
    stored = await store.store(make_image("PNG"), filename="beach.png")

    assert stored.url == "https://res.test/memories/abc.png"
    assert stored.public_id == "memories/abc"
    assert seen["url"] == f"{BASE_URL}/demo/image/upload"
    for fragment in (b'name="folder"', b"memories", b'name="signature"', b'name="api_key"', b"key123", b'filename="beach.png"'):
        assert fragment in seen["body"]


@pytest.mark.asyncio
async def test_store_rejects_unsupported_format_before_request():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={})

    store = build_store(handler)
    with pytest.raises(UploadError):
        await store.store(b"%PDF-1.4")
    assert calls == []


@pytest.mark.asyncio
async def test_store_error_responses_raise_upload_error():
    store = build_store(lambda request: httpx.Response(400, json={"error": {"message": "Invalid Signature"}}))
    with pytest.raises(UploadError, match="Invalid Signature"):
        await store.store(make_image("PNG"))


@pytest.mark.asyncio
async def test_store_transport_failure_raises_upload_error():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    store = build_store(handler)
    with pytest.raises(UploadError):
        await store.store(make_image("PNG"))


@pytest.mark.asyncio
async def test_store_incomplete_response_raises_upload_error():
    store = build_store(lambda request: httpx.Response(200, json={"secure_url": "https://res.test/x.png"}))
    with pytest.raises(UploadError):
        await store.store(make_image("PNG"))


@pytest.mark.asyncio
async def test_remove_posts_signed_destroy():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["form"] = parse_qs(request.content.decode())
        return httpx.Response(200, json={"result": "ok"})

    store = build_store(handler)

    assert await store.remove("memories/abc") is True
    assert seen["url"] == f"{BASE_URL}/demo/image/destroy"
    form = seen["form"]
    assert form["public_id"] == ["memories/abc"]
    assert form["api_key"] == ["key123"]
    expected = store.sign({"public_id": "memories/abc", "timestamp": form["timestamp"][0]})
    assert form["signature"] == [expected]


@pytest.mark.asyncio
async def test_remove_not_found_returns_false():
    store = build_store(lambda request: httpx.Response(200, json={"result": "not found"}))
    assert await store.remove("memories/gone") is False


@pytest.mark.asyncio
async def test_remove_failures_raise_delete_error():
    def unreachable(request):
        raise httpx.ConnectError("unreachable", request=request)

    with pytest.raises(DeleteError):
        await build_store(unreachable).remove("memories/abc")
    with pytest.raises(DeleteError):
        await build_store(lambda request: httpx.Response(500, text="boom")).remove("memories/abc")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, json=["unexpected"]),
        httpx.Response(200, json="ok"),
        httpx.Response(200, content=b"\xff\xfe\xfa"),
    ],
)
async def test_malformed_destroy_reply_raises_delete_error(response):
    store = build_store(lambda request: response)
    with pytest.raises(DeleteError):
        await store.remove("memories/abc")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, json=["memories/abc"]),
        httpx.Response(200, content=b"\xff\xfe\xfa"),
    ],
)
async def test_malformed_upload_reply_raises_upload_error(response):
    store = build_store(lambda request: response)
    with pytest.raises(UploadError):
        await store.store(make_image("PNG"))
