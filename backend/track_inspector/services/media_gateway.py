"""Media gateway - abstract interface over the image host, with Cloudinary and local implementations."""
import base64
import binascii
import hashlib
import re
import threading
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, Optional
from uuid import uuid4
import logging

import httpx

from track_inspector.core.config import settings
from track_inspector.core.enums import MediaBackend
from track_inspector.core.exceptions import UpstreamError, ValidationError

logger = logging.getLogger(__name__)

DATA_URI_RE = re.compile(r"^data:image/[\w.+-]+;base64,(?P<data>.*)$", re.DOTALL)


def public_id_from_url(image_url: str, folder: str) -> str:
    """
    Derive the host identifier of a stored image from its access URL.

    ``https://host/<folder>/abc123.jpg`` -> ``<folder>/abc123``
    """
    last_segment = image_url.split("/")[-1]
    stem = last_segment.split(".")[0]
    return f"{folder}/{stem}"


def sniff_image_format(data: bytes) -> Optional[str]:
    """Return "png"/"jpg" from the file signature, or None."""
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "png"
    if data.startswith(b"\xff\xd8\xff"):
        return "jpg"
    return None


class MediaGateway(ABC):
    """Abstract interface for image hosting backends."""

    def __init__(self, folder: str, allowed_formats: Iterable[str]):
        self.folder = folder
        self.allowed_formats = [fmt.lower() for fmt in allowed_formats]

    @abstractmethod
    async def upload_file(
        self,
        data: bytes,
        filename: str,
        content_type: Optional[str] = None
    ) -> str:
        """
        Store an uploaded image and return its access URL.

        Args:
            data: Raw image bytes
            filename: Original filename (its extension picks the format)
            content_type: MIME type reported by the client

        Returns:
            URL the image can be fetched from
        """
        pass

    @abstractmethod
    async def upload_base64(self, image: str) -> str:
        """Store an inline-encoded image (data URI or bare base64) and return its secure URL."""
        pass

    @abstractmethod
    async def delete(self, public_id: str) -> bool:
        """
        Delete a stored image by identifier.

        Returns:
            True if deleted, False if the host did not know the identifier
        """
        pass

    async def close(self) -> None:
        """Release network resources held by the backend."""
        return None

    def public_id_for_url(self, image_url: str) -> str:
        return public_id_from_url(image_url, self.folder)

    def _check_format(self, filename: Optional[str]) -> str:
        extension = Path(filename or "").suffix.lower().lstrip(".")
        if extension not in self.allowed_formats:
            raise ValidationError(
                f"Unsupported image format. Allowed: {', '.join(self.allowed_formats)}"
            )
        return extension

    @staticmethod
    def _require_image(image: Optional[str]) -> str:
        if not image or not image.strip():
            raise ValidationError("No image provided")
        return image


class CloudinaryMediaGateway(MediaGateway):
    """Signed client for the Cloudinary upload API."""

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        folder: str = "cgr_track_inspector",
        max_width: int = 1000,
        allowed_formats: Iterable[str] = ("jpg", "jpeg", "png"),
        timeout_seconds: float = 30.0,
        base_url: str = "https://api.cloudinary.com/v1_1",
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(folder, allowed_formats)
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.max_width = max_width
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        logger.info(f"Initialized Cloudinary media gateway (cloud: {cloud_name}, folder: {folder})")

    def _endpoint(self, action: str) -> str:
        return f"{self.base_url}/{self.cloud_name}/image/{action}"

    def sign(self, params: Dict[str, Any]) -> str:
        """SHA-1 over the alphabetically sorted ``key=value`` pairs followed by the API secret."""
        to_sign = "&".join(
            f"{key}={params[key]}"
            for key in sorted(params)
            if params[key] not in (None, "")
        )
        return hashlib.sha1(f"{to_sign}{self.api_secret}".encode("utf-8")).hexdigest()

    def _signed_params(self, params: Dict[str, Any]) -> Dict[str, Any]:
        params = {**params, "timestamp": str(int(time.time()))}
        return {**params, "api_key": self.api_key, "signature": self.sign(params)}

    async def _post(
        self,
        action: str,
        data: Dict[str, Any],
        failure_message: str,
        files: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        try:
            response = await self._client.post(self._endpoint(action), data=data, files=files)
        except httpx.HTTPError as exc:
            logger.error(f"Cloudinary {action} request failed: {exc}")
            raise UpstreamError(failure_message) from exc

        if response.status_code != 200:
            detail = response.text.strip()[:500]
            logger.error(f"Cloudinary {action} failed ({response.status_code}): {detail}")
            raise UpstreamError(failure_message)

        try:
            payload = response.json()
        except ValueError as exc:
            logger.error(f"Invalid JSON from Cloudinary {action}: {exc}")
            raise UpstreamError(failure_message) from exc

        if not isinstance(payload, dict):
            logger.error(f"Cloudinary {action} payload is not a JSON object")
            raise UpstreamError(failure_message)
        return payload

    def _secure_url(self, payload: Dict[str, Any]) -> str:
        url = payload.get("secure_url")
        if not url:
            logger.error(f"Cloudinary upload response has no secure_url: {payload}")
            raise UpstreamError("Image upload failed")
        logger.info(f"Uploaded image {payload.get('public_id')}")
        return url

    async def upload_file(
        self,
        data: bytes,
        filename: str,
        content_type: Optional[str] = None
    ) -> str:
        self._check_format(filename)
        params = self._signed_params({
            "folder": self.folder,
            "allowed_formats": ",".join(self.allowed_formats),
            "transformation": f"c_limit,w_{self.max_width}",
        })
        payload = await self._post(
            "upload",
            params,
            failure_message="Image upload failed",
            files={"file": (filename, data, content_type or "application/octet-stream")},
        )
        return self._secure_url(payload)

    async def upload_base64(self, image: str) -> str:
        image = self._require_image(image)
        params = self._signed_params({"folder": self.folder})
        payload = await self._post(
            "upload",
            {**params, "file": image},
            failure_message="Image upload failed",
        )
        return self._secure_url(payload)

    async def delete(self, public_id: str) -> bool:
        params = self._signed_params({"public_id": public_id})
        payload = await self._post("destroy", params, failure_message="Image delete failed")
        result = payload.get("result")
        if result != "ok":
            logger.warning(f"Cloudinary destroy of {public_id} returned {result!r}")
            return False
        logger.info(f"Deleted image {public_id}")
        return True

    async def close(self) -> None:
        await self._client.aclose()


class LocalMediaGateway(MediaGateway):
    """Local filesystem implementation for development without Cloudinary credentials.

    Images are stored as uploaded; the max-width transformation is not applied.
    """

    def __init__(
        self,
        base_path: str,
        base_url: str,
        folder: str = "cgr_track_inspector",
        allowed_formats: Iterable[str] = ("jpg", "jpeg", "png"),
    ):
        super().__init__(folder, allowed_formats)
        self.base_path = Path(base_path)
        self.base_url = base_url.rstrip("/")
        (self.base_path / folder).mkdir(parents=True, exist_ok=True)
        logger.info(f"Initialized local media storage at: {self.base_path}")

    def _store(self, data: bytes, extension: str) -> str:
        name = f"{uuid4().hex}.{extension}"
        file_path = self.base_path / self.folder / name
        try:
            with open(file_path, "wb") as f:
                f.write(data)
        except OSError as exc:
            logger.error(f"Failed to store image {name}: {exc}")
            raise UpstreamError("Image upload failed") from exc

        logger.info(f"Stored image: {self.folder}/{name}")
        return f"{self.base_url}/{self.folder}/{name}"

    async def upload_file(
        self,
        data: bytes,
        filename: str,
        content_type: Optional[str] = None
    ) -> str:
        extension = self._check_format(filename)
        return self._store(data, extension)

    async def upload_base64(self, image: str) -> str:
        image = self._require_image(image).strip()
        match = DATA_URI_RE.match(image)
        encoded = match.group("data") if match else image

        try:
            data = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError):
            raise ValidationError("Invalid image data")

        extension = sniff_image_format(data)
        if extension is None or extension not in self.allowed_formats:
            raise ValidationError(
                f"Unsupported image format. Allowed: {', '.join(self.allowed_formats)}"
            )
        return self._store(data, extension)

    async def delete(self, public_id: str) -> bool:
        target = (self.base_path / public_id).resolve()
        if self.base_path.resolve() not in target.parents:
            logger.warning(f"Refusing to delete outside media root: {public_id}")
            return False

        matches = list(target.parent.glob(f"{target.name}.*"))
        if not matches:
            logger.warning(f"Image not found for deletion: {public_id}")
            return False

        for path in matches:
            path.unlink()
        logger.info(f"Deleted image: {public_id}")
        return True


_gateway: Optional[MediaGateway] = None
# Sync dependencies run in the threadpool, so first use can race
_gateway_lock = threading.Lock()


def build_media_gateway() -> MediaGateway:
    """
    Build the configured media gateway.

    Raises:
        ValueError: If the Cloudinary backend is selected without credentials
    """
    if settings.MEDIA_BACKEND == MediaBackend.LOCAL.value:
        return LocalMediaGateway(
            base_path=settings.LOCAL_MEDIA_PATH,
            base_url=settings.LOCAL_MEDIA_BASE_URL,
            folder=settings.MEDIA_FOLDER,
            allowed_formats=settings.MEDIA_ALLOWED_FORMATS,
        )

    if not (
        settings.CLOUDINARY_CLOUD_NAME
        and settings.CLOUDINARY_API_KEY
        and settings.CLOUDINARY_API_SECRET
    ):
        raise ValueError(
            "CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY and CLOUDINARY_API_SECRET "
            "must be configured for the cloudinary media backend"
        )
    return CloudinaryMediaGateway(
        cloud_name=settings.CLOUDINARY_CLOUD_NAME,
        api_key=settings.CLOUDINARY_API_KEY,
        api_secret=settings.CLOUDINARY_API_SECRET,
        folder=settings.MEDIA_FOLDER,
        max_width=settings.MEDIA_MAX_WIDTH,
        allowed_formats=settings.MEDIA_ALLOWED_FORMATS,
        timeout_seconds=settings.MEDIA_TIMEOUT_SECONDS,
        base_url=settings.CLOUDINARY_API_BASE_URL,
    )


def get_media_gateway() -> MediaGateway:
    """Return the process-wide media gateway, creating it on first use."""
    global _gateway
    if _gateway is None:
        with _gateway_lock:
            if _gateway is None:
                _gateway = build_media_gateway()
    return _gateway


async def close_media_gateway() -> None:
    global _gateway
    if _gateway is not None:
        await _gateway.close()
        _gateway = None
