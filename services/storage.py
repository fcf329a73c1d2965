"""Local disk storage for uploaded images.

Uploads are validated completely (name, size, decoded format) before
anything is written, so a rejected request never leaves files behind.
Stored files are referenced by relative URLs under ``UPLOAD_URL_PREFIX``.
"""
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from uuid import uuid4
import logging

from fastapi import UploadFile
from PIL import Image, UnidentifiedImageError

from core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

FORMAT_EXTENSIONS = {
    "PNG": "png",
    "JPEG": "jpg",
    "GIF": "gif",
    "WEBP": "webp",
}


class InvalidUploadError(ValueError):
    """Raised when an uploaded file is not an acceptable image"""


@dataclass
class ValidatedImage:
    data: bytes
    extension: str


def upload_dir() -> Path:
    path = Path(settings.UPLOAD_FOLDER)
    path.mkdir(parents=True, exist_ok=True)
    return path


def validate_image(upload: UploadFile) -> ValidatedImage:
    filename = upload.filename or ""
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if extension not in settings.ALLOWED_IMAGE_TYPES:
        raise InvalidUploadError(f"Unsupported image format: {filename or 'unnamed file'}")

    data = upload.file.read()
    if not data:
        raise InvalidUploadError(f"Empty file: {filename}")
    if len(data) > settings.MAX_UPLOAD_SIZE:
        raise InvalidUploadError(f"File too large: {filename}")

    try:
        with Image.open(BytesIO(data)) as image:
            image_format = image.format
            image.verify()
    except (
        UnidentifiedImageError,
        Image.DecompressionBombError,
        OSError,
        SyntaxError,
        ValueError,
    ) as e:
        raise InvalidUploadError(f"Invalid image file: {filename}") from e

    # Stored name follows the decoded content, not the client's file name
    stored_extension = FORMAT_EXTENSIONS.get(image_format)
    if stored_extension not in settings.ALLOWED_IMAGE_TYPES:
        raise InvalidUploadError(f"Unsupported image format: {filename}")

    return ValidatedImage(data=data, extension=stored_extension)


def validate_images(uploads: list[UploadFile]) -> list[ValidatedImage]:
    return [validate_image(upload) for upload in uploads]


def _url_for(file_name: str) -> str:
    return f"{settings.UPLOAD_URL_PREFIX}/{file_name}"


def path_for(url: str) -> Path:
    """Map a stored relative URL back to its file on disk"""
    # Only the basename is trusted, stored values never leave the upload folder
    return upload_dir() / Path(url).name


def save_image(image: ValidatedImage) -> str:
    file_name = f"{uuid4()}.{image.extension}"
    (upload_dir() / file_name).write_bytes(image.data)
    logger.debug(f"Stored upload {file_name}")
    return _url_for(file_name)


def save_images(images: list[ValidatedImage]) -> list[str]:
    return [save_image(image) for image in images]


def save_profile_picture(image: ValidatedImage) -> str:
    """Store a square WebP rendition of the uploaded picture"""
    with Image.open(BytesIO(image.data)) as source:
        size = (settings.PROFILE_PICTURE_SIZE, settings.PROFILE_PICTURE_SIZE)
        resized = source.convert("RGB").resize(size, Image.Resampling.LANCZOS)

    file_name = f"{uuid4()}.webp"
    resized.save(upload_dir() / file_name, format="WEBP", quality=85)
    return _url_for(file_name)


def delete_file(url: str | None) -> bool:
    """Remove a stored file; a missing file is not an error"""
    if not url:
        return False
    file_path = path_for(url)
    try:
        file_path.unlink()
    except FileNotFoundError:
        logger.warning(f"Upload already gone: {file_path.name}")
        return False
    return True
