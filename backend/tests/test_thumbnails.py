import io
import pytest
from PIL import Image
from dailies.core.errors import ThumbnailError
from dailies.services.thumbnails import can_thumbnail, derive_thumbnail


def _encode(size, fmt="PNG", mode="RGB") -> bytes:
    buffer = io.BytesIO()
    Image.new(mode, size).save(buffer, format=fmt)
    return buffer.getvalue()


def test_fits_inside_box_as_webp():
    data = derive_thumbnail(_encode((1000, 1000)))
    with Image.open(io.BytesIO(data)) as img:
        assert img.format == "WEBP"
        assert img.size == (180, 180)


def test_never_enlarges():
    with Image.open(io.BytesIO(derive_thumbnail(_encode((64, 32), fmt="JPEG")))) as img:
        assert img.size == (64, 32)


def test_keeps_alpha():
    with Image.open(io.BytesIO(derive_thumbnail(_encode((400, 400), mode="RGBA")))) as img:
        assert "A" in img.getbands()


def test_budgets_and_bad_input():
    with pytest.raises(ThumbnailError):
        derive_thumbnail(b"")
    with pytest.raises(ThumbnailError):
        derive_thumbnail(b"garbage")
    with pytest.raises(ThumbnailError, match="pixel budget"):
        derive_thumbnail(_encode((200, 200)), max_pixels=100)
    with pytest.raises(ThumbnailError, match="source budget"):
        derive_thumbnail(_encode((200, 200)), max_source_bytes=10)


@pytest.mark.parametrize(
    "content_type, expected",
    [("image/png", True), ("image/jpeg", True), ("image/x-exr", False), ("video/mp4", False), (None, False)],
)
def test_can_thumbnail(content_type, expected):
    assert can_thumbnail(content_type) is expected
