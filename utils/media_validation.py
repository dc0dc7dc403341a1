"""Validation helpers for uploaded portrait images."""

from fastapi import UploadFile

from models.errors import ReadError
from models.reading_models import ImagePayload

ALLOWED_IMAGE_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/webp",
    "image/gif",
    "image/heic",
    "image/heif",
}

EXTENSION_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".webp": "image/webp",
    ".gif": "image/gif",
    ".heic": "image/heic",
    ".heif": "image/heif",
}


def resolve_image_type(filename: str | None, content_type: str | None) -> str:
    """Return the media type for an upload, checking it is a supported image.

    Browsers occasionally omit the content type; in that case the filename
    extension decides.

    Raises:
        ReadError: If neither the content type nor the extension is a supported image.
    """
    if content_type:
        media_type = content_type.lower().split(";", 1)[0].strip()
        if media_type not in ALLOWED_IMAGE_TYPES:
            raise ReadError(f"Unsupported image content type: {content_type}")
        return "image/jpeg" if media_type == "image/jpg" else media_type

    lowered = (filename or "").lower()
    for extension, media_type in EXTENSION_TYPES.items():
        if lowered.endswith(extension):
            return media_type
    raise ReadError("Unsupported or missing image content type.")


async def read_image_payload(upload: UploadFile) -> ImagePayload:
    """Read an uploaded image fully into memory.

    Raises:
        ReadError: If the upload cannot be read, is empty, or is not an image.
    """
    media_type = resolve_image_type(upload.filename, upload.content_type)
    try:
        data = await upload.read()
    except Exception as exc:
        raise ReadError(f"Unable to read uploaded image: {exc}") from exc
    if not data:
        raise ReadError("Uploaded image is empty.")
    return ImagePayload(data=data, media_type=media_type, filename=upload.filename or "portrait")
