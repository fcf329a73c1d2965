from io import BytesIO

import pytest
from fastapi import UploadFile
from PIL import Image

from services import storage


def make_upload(name, data):
    return UploadFile(file=BytesIO(data), filename=name)


def png_bytes():
    buffer = BytesIO()
    Image.new("RGB", (4, 4), "blue").save(buffer, format="PNG")
    return buffer.getvalue()


def jpeg_bytes():
    buffer = BytesIO()
    Image.new("RGB", (4, 4), "blue").save(buffer, format="JPEG")
    return buffer.getvalue()


def test_validate_image_accepts_png():
    image = storage.validate_image(make_upload("photo.PNG", png_bytes()))
    assert image.extension == "png"
    assert image.data.startswith(b"\x89PNG")


@pytest.mark.parametrize("name", ["photo", "photo.exe", "archive.tar.gz"])
def test_validate_image_rejects_extension(name):
    with pytest.raises(storage.InvalidUploadError):
        storage.validate_image(make_upload(name, png_bytes()))


def test_validate_image_rejects_empty_file():
    with pytest.raises(storage.InvalidUploadError):
        storage.validate_image(make_upload("photo.png", b""))


def test_validate_image_rejects_oversized_file(monkeypatch):
    monkeypatch.setattr(storage.settings, "MAX_UPLOAD_SIZE", 10)
    with pytest.raises(storage.InvalidUploadError, match="too large"):
        storage.validate_image(make_upload("photo.png", png_bytes()))


def test_save_and_delete_image():
    url = storage.save_image(storage.ValidatedImage(data=png_bytes(), extension="png"))
    assert url.startswith(storage.settings.UPLOAD_URL_PREFIX + "/")
    assert storage.path_for(url).read_bytes() == png_bytes()

    assert storage.delete_file(url) is True
    assert not storage.path_for(url).exists()
    # Second delete is tolerated
    assert storage.delete_file(url) is False


def test_delete_file_ignores_empty_reference():
    assert storage.delete_file(None) is False
    assert storage.delete_file("") is False


def test_path_for_stays_inside_upload_folder():
    path = storage.path_for("/uploads/../../etc/passwd")
    assert path.parent == storage.upload_dir()
    assert path.name == "passwd"


def test_validate_image_rejects_decompression_bomb(oversized_png):
    with pytest.raises(storage.InvalidUploadError, match="Invalid image"):
        storage.validate_image(make_upload("huge.png", oversized_png))


def test_validate_image_uses_decoded_format_for_extension():
    image = storage.validate_image(make_upload("disguised.png", jpeg_bytes()))
    assert image.extension == "jpg"

    url = storage.save_image(image)
    assert url.endswith(".jpg")
    storage.delete_file(url)


def test_validate_image_rejects_format_outside_allowed_types(monkeypatch):
    monkeypatch.setattr(storage.settings, "ALLOWED_IMAGE_TYPES", ["png", "jpeg"])
    with pytest.raises(storage.InvalidUploadError, match="Unsupported"):
        storage.validate_image(make_upload("photo.jpeg", jpeg_bytes()))
