"""Image upload endpoints brokering files to the media host."""

from typing import Optional

from fastapi import APIRouter, File, UploadFile

from track_inspector.core.deps import Media
from track_inspector.core.exceptions import ValidationError
from track_inspector.schemas.shared import Base64UploadRequest, UploadResponse

router = APIRouter(prefix="/upload", tags=["upload"])


@router.post("", response_model=UploadResponse)
async def upload_image(media: Media, image: Optional[UploadFile] = File(None)):
    """Upload a multipart image (field ``image``) and return its URL."""
    if image is None:
        raise ValidationError("No image provided")

    data = await image.read()
    image_url = await media.upload_file(data, image.filename, image.content_type)
    return UploadResponse(image_url=image_url)


@router.post("/base64", response_model=UploadResponse)
async def upload_base64_image(payload: Base64UploadRequest, media: Media):
    """Upload an inline base64 image (``{"image": "data:image/png;base64,..."}``)."""
    if not payload.image:
        raise ValidationError("No image provided")

    image_url = await media.upload_base64(payload.image)
    return UploadResponse(image_url=image_url)
