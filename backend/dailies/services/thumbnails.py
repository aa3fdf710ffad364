import io
import logging
from PIL import Image, UnidentifiedImageError
from dailies.core.config import settings
from dailies.core.errors import ThumbnailError

logger = logging.getLogger(__name__)

# Raw multi-channel frames the decoder cannot downscale.
UNSUPPORTED_IMAGE_TYPES = {"image/x-exr"}
THUMBNAIL_CONTENT_TYPE = "image/webp"


def can_thumbnail(content_type: str | None) -> bool:
    return bool(content_type) and content_type.startswith("image/") and content_type not in UNSUPPORTED_IMAGE_TYPES


def derive_thumbnail(
    data: bytes,
    box: tuple[int, int] | None = None,
    quality: int | None = None,
    max_source_bytes: int | None = None,
    max_pixels: int | None = None,
) -> bytes:
    box = box or (settings.thumbnail_width, settings.thumbnail_height)
    quality = quality or settings.thumbnail_quality
    max_source_bytes = max_source_bytes or settings.thumbnail_max_source_mb * 1024 * 1024
    max_pixels = max_pixels or settings.thumbnail_max_pixels

    if not data:
        raise ThumbnailError("Empty image buffer")
    if len(data) > max_source_bytes:
        raise ThumbnailError(f"Image of {len(data)} bytes exceeds the thumbnail source budget")
    try:
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
            if width * height > max_pixels:
                raise ThumbnailError(f"Image of {width}x{height} pixels exceeds the thumbnail pixel budget")
            if img.format == "JPEG":
                img.draft("RGB", box)
            out = img.convert("RGBA" if "A" in img.getbands() else "RGB")
            out.thumbnail(box)
            buffer = io.BytesIO()
            out.save(buffer, format="WEBP", quality=quality)
    except ThumbnailError:
        raise
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError, Image.DecompressionBombError) as exc:
        raise ThumbnailError(f"Could not derive thumbnail: {exc}") from exc
    logger.debug("Thumbnail derived", extra={"source_size": len(data), "thumbnail_size": buffer.tell()})
    return buffer.getvalue()
