"""Tests for the media gateway: identifiers, Cloudinary signing and local storage."""

import base64
import hashlib
import time
from concurrent.futures import ThreadPoolExecutor
from urllib.parse import parse_qs

import httpx
import pytest

from track_inspector.core.exceptions import UpstreamError, ValidationError
from track_inspector.services import media_gateway
from track_inspector.services.media_gateway import (
    CloudinaryMediaGateway,
    LocalMediaGateway,
    public_id_from_url,
    sniff_image_format,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
JPG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 32


# ═══════════════════════════════════════════════════════════════
# HELPERS
# ═══════════════════════════════════════════════════════════════


class TestPublicId:
    """Test image identifier extraction from access URLs."""

    def test_cloudinary_url(self):
        url = "https://res.cloudinary.com/demo/image/upload/v1712/cgr_track_inspector/abc123.jpg"
        assert public_id_from_url(url, "cgr_track_inspector") == "cgr_track_inspector/abc123"

    def test_no_extension(self):
        assert public_id_from_url("https://host/x/abc123", "f") == "f/abc123"

    def test_stem_stops_at_first_dot(self):
        assert public_id_from_url("https://host/x/abc.thumb.png", "f") == "f/abc"

    def test_sniff_format(self):
        assert sniff_image_format(PNG_BYTES) == "png"
        assert sniff_image_format(JPG_BYTES) == "jpg"
        assert sniff_image_format(b"GIF89a") is None


# ═══════════════════════════════════════════════════════════════
# CLOUDINARY
# ═══════════════════════════════════════════════════════════════


def _form(request: httpx.Request) -> dict:
    return {key: values[0] for key, values in parse_qs(request.content.decode()).items()}


def _gateway(handler) -> CloudinaryMediaGateway:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return CloudinaryMediaGateway(
        cloud_name="demo",
        api_key="key123",
        api_secret="secret456",
        client=client,
    )


class TestCloudinarySigning:
    """Test request signing."""

    def test_sign_sorts_params_and_appends_secret(self):
        gateway = _gateway(lambda request: httpx.Response(200, json={}))

        signature = gateway.sign({"timestamp": "1700000000", "folder": "cgr_track_inspector"})

        expected = hashlib.sha1(
            b"folder=cgr_track_inspector&timestamp=1700000000secret456"
        ).hexdigest()
        assert signature == expected

    def test_sign_skips_empty_values(self):
        gateway = _gateway(lambda request: httpx.Response(200, json={}))

        assert gateway.sign({"a": "1", "b": "", "c": None}) == gateway.sign({"a": "1"})


class TestCloudinaryUpload:
    """Test uploads through a mocked Cloudinary API."""

    @pytest.mark.asyncio
    async def test_upload_file(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = request.content
            return httpx.Response(200, json={
                "public_id": "cgr_track_inspector/abc123",
                "secure_url": "https://res.cloudinary.com/demo/image/upload/cgr_track_inspector/abc123.jpg",
            })

        gateway = _gateway(handler)
        url = await gateway.upload_file(JPG_BYTES, "crack.jpg", "image/jpeg")

        assert url.endswith("cgr_track_inspector/abc123.jpg")
        assert seen["url"] == "https://api.cloudinary.com/v1_1/demo/image/upload"
        assert b'name="folder"' in seen["body"]
        assert b"c_limit,w_1000" in seen["body"]
        assert b"jpg,jpeg,png" in seen["body"]
        assert b'name="signature"' in seen["body"]

    @pytest.mark.asyncio
    async def test_upload_rejects_unsupported_format(self):
        calls = []
        gateway = _gateway(lambda request: calls.append(request) or httpx.Response(200, json={}))

        with pytest.raises(ValidationError) as exc_info:
            await gateway.upload_file(b"GIF89a", "crack.gif")

        assert "Unsupported image format" in exc_info.value.message
        assert calls == []

    @pytest.mark.asyncio
    async def test_upload_base64(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(_form(request))
            return httpx.Response(200, json={"secure_url": "https://res.cloudinary.com/demo/x.png"})

        gateway = _gateway(handler)
        url = await gateway.upload_base64("data:image/png;base64,iVBORw0KGgo=")

        assert url == "https://res.cloudinary.com/demo/x.png"
        assert seen["file"] == "data:image/png;base64,iVBORw0KGgo="
        assert seen["folder"] == "cgr_track_inspector"
        assert seen["api_key"] == "key123"
        expected = hashlib.sha1(
            f"folder=cgr_track_inspector&timestamp={seen['timestamp']}secret456".encode()
        ).hexdigest()
        assert seen["signature"] == expected

    @pytest.mark.asyncio
    @pytest.mark.parametrize("image", ["", "   "])
    async def test_upload_base64_requires_image(self, image):
        gateway = _gateway(lambda request: httpx.Response(200, json={}))

        with pytest.raises(ValidationError) as exc_info:
            await gateway.upload_base64(image)
        assert exc_info.value.message == "No image provided"

    @pytest.mark.asyncio
    async def test_upstream_error(self):
        gateway = _gateway(lambda request: httpx.Response(500, text="boom"))

        with pytest.raises(UpstreamError) as exc_info:
            await gateway.upload_file(PNG_BYTES, "crack.png")
        assert exc_info.value.message == "Image upload failed"

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        gateway = _gateway(handler)

        with pytest.raises(UpstreamError):
            await gateway.upload_base64("iVBORw0KGgo=")

    @pytest.mark.asyncio
    async def test_missing_secure_url(self):
        gateway = _gateway(lambda request: httpx.Response(200, json={"error": "nope"}))

        with pytest.raises(UpstreamError):
            await gateway.upload_file(PNG_BYTES, "crack.png")


class TestCloudinaryDelete:
    """Test image destroy calls."""

    @pytest.mark.asyncio
    async def test_delete_ok(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen.update(_form(request))
            return httpx.Response(200, json={"result": "ok"})

        gateway = _gateway(handler)

        assert await gateway.delete("cgr_track_inspector/abc123") is True
        assert seen["url"] == "https://api.cloudinary.com/v1_1/demo/image/destroy"
        assert seen["public_id"] == "cgr_track_inspector/abc123"

    @pytest.mark.asyncio
    async def test_delete_not_found(self):
        gateway = _gateway(lambda request: httpx.Response(200, json={"result": "not found"}))

        assert await gateway.delete("cgr_track_inspector/missing") is False

    @pytest.mark.asyncio
    async def test_delete_upstream_failure(self):
        gateway = _gateway(lambda request: httpx.Response(401, json={"error": {"message": "bad key"}}))

        with pytest.raises(UpstreamError) as exc_info:
            await gateway.delete("cgr_track_inspector/abc123")
        assert exc_info.value.message == "Image delete failed"


# ═══════════════════════════════════════════════════════════════
# LOCAL STORAGE
# ═══════════════════════════════════════════════════════════════


class TestLocalMediaGateway:
    """Test filesystem storage used in development."""

    @pytest.fixture
    def gateway(self, tmp_path):
        return LocalMediaGateway(base_path=str(tmp_path), base_url="http://localhost:4000/media")

    @pytest.mark.asyncio
    async def test_upload_and_delete(self, gateway, tmp_path):
        url = await gateway.upload_file(PNG_BYTES, "crack.png")

        assert url.startswith("http://localhost:4000/media/cgr_track_inspector/")
        assert url.endswith(".png")
        stored = list((tmp_path / "cgr_track_inspector").iterdir())
        assert len(stored) == 1
        assert stored[0].read_bytes() == PNG_BYTES

        assert await gateway.delete(gateway.public_id_for_url(url)) is True
        assert list((tmp_path / "cgr_track_inspector").iterdir()) == []

    @pytest.mark.asyncio
    async def test_upload_base64_data_uri(self, gateway, tmp_path):
        encoded = base64.b64encode(JPG_BYTES).decode()

        url = await gateway.upload_base64(f"data:image/jpeg;base64,{encoded}")

        assert url.endswith(".jpg")
        assert len(list((tmp_path / "cgr_track_inspector").iterdir())) == 1

    @pytest.mark.asyncio
    async def test_upload_base64_bare(self, gateway):
        url = await gateway.upload_base64(base64.b64encode(PNG_BYTES).decode())

        assert url.endswith(".png")

    @pytest.mark.asyncio
    async def test_invalid_base64(self, gateway):
        with pytest.raises(ValidationError) as exc_info:
            await gateway.upload_base64("not base64 at all!")
        assert exc_info.value.message == "Invalid image data"

    @pytest.mark.asyncio
    async def test_base64_unsupported_format(self, gateway):
        with pytest.raises(ValidationError):
            await gateway.upload_base64(base64.b64encode(b"GIF89a....").decode())

    @pytest.mark.asyncio
    async def test_delete_missing(self, gateway):
        assert await gateway.delete("cgr_track_inspector/nothing") is False

    @pytest.mark.asyncio
    async def test_delete_outside_root_refused(self, gateway):
        assert await gateway.delete("../../etc/passwd") is False


# ═══════════════════════════════════════════════════════════════
# PROCESS-WIDE GATEWAY
# ═══════════════════════════════════════════════════════════════


class TestGatewaySingleton:
    """Test lazy creation of the shared gateway."""

    def test_concurrent_first_use_builds_once(self, monkeypatch, tmp_path):
        builds = []

        def slow_build():
            time.sleep(0.05)
            gateway = LocalMediaGateway(base_path=str(tmp_path), base_url="http://localhost:4000/media")
            builds.append(gateway)
            return gateway

        monkeypatch.setattr(media_gateway, "_gateway", None)
        monkeypatch.setattr(media_gateway, "build_media_gateway", slow_build)

        with ThreadPoolExecutor(max_workers=4) as pool:
            gateways = list(pool.map(lambda _: media_gateway.get_media_gateway(), range(4)))

        assert len(builds) == 1
        assert all(gateway is builds[0] for gateway in gateways)

    @pytest.mark.asyncio
    async def test_close_resets_gateway(self, monkeypatch, tmp_path):
        monkeypatch.setattr(media_gateway, "_gateway", None)
        monkeypatch.setattr(
            media_gateway,
            "build_media_gateway",
            lambda: LocalMediaGateway(base_path=str(tmp_path), base_url="http://localhost:4000/media"),
        )

        first = media_gateway.get_media_gateway()
        await media_gateway.close_media_gateway()

        assert media_gateway.get_media_gateway() is not first
