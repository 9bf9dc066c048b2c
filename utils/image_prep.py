# utils/image_prep.py

import os
import io
import base64

from PIL import Image, ImageOps, UnidentifiedImageError

# ------------------------------
# Defaults
# ------------------------------
MAX_EDGE = int(os.environ.get("FALLGUARD_MAX_EDGE", "1600"))
JPEG_QUALITY = int(os.environ.get("FALLGUARD_JPEG_QUALITY", "80"))

DATA_URL_PREFIX = "data:image/jpeg;base64,"


class ImageProcessingError(ValueError):
    """Raised when a single image cannot be decoded or re-encoded."""


# ------------------------------
# Loading
# ------------------------------
def load_image_with_orientation(source):
    """Load and auto-rotate mobile/desktop images.

    `source` may be raw bytes or any file-like object Pillow can read
    (Streamlit's UploadedFile included).
    """
    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(source)
    elif hasattr(source, "seek"):
        source.seek(0)

    try:
        img = Image.open(source)
        img = ImageOps.exif_transpose(img)
        return img.convert("RGB")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        # DecompressionBombError: frame larger than Image.MAX_IMAGE_PIXELS allows
        raise ImageProcessingError(f"Could not read image: {e}") from e


# ------------------------------
# Geometry
# ------------------------------
def fit_within(width, height, max_edge=MAX_EDGE):
    """Return (w, h) with the longest edge capped at `max_edge`.

    Aspect ratio is preserved and images already inside the cap are
    returned unchanged (never upscaled).
    """
    if width <= 0 or height <= 0:
        raise ImageProcessingError(f"Invalid image size {width}x{height}")

    longest = max(width, height)
    if longest <= max_edge:
        return width, height

    scale = max_edge / longest
    if width >= height:
        return max_edge, max(1, round(height * scale))
    return max(1, round(width * scale)), max_edge


def resize_for_upload(img, max_edge=MAX_EDGE):
    """Downscale large images so uploads stay small on mobile networks."""
    new_size = fit_within(img.width, img.height, max_edge)
    if new_size == img.size:
        return img
    return img.resize(new_size, Image.LANCZOS)


def mirror_horizontally(img):
    # front camera previews are mirrored; the encoded frame must match
    return ImageOps.mirror(img)


# ------------------------------
# Encoding
# ------------------------------
def encode_jpeg_base64(img, quality=JPEG_QUALITY):
    buffer = io.BytesIO()
    try:
        img.save(buffer, format="JPEG", quality=quality)
    except OSError as e:
        raise ImageProcessingError(f"Could not encode image: {e}") from e
    return base64.b64encode(buffer.getvalue()).decode("utf-8")


def strip_data_url(value: str) -> str:
    """Drop a `data:...;base64,` prefix if one is present."""
    if value.startswith("data:") and "," in value:
        return value.split(",", 1)[1]
    return value


def to_data_url(b64: str) -> str:
    return f"{DATA_URL_PREFIX}{b64}"


def normalize_image(source, max_edge=MAX_EDGE, quality=JPEG_QUALITY, mirror=False) -> str:
    """Full capture pipeline: decode, orient, downscale, optionally mirror,
    re-encode as JPEG and return plain base64 (no data-URL prefix).
    """
    img = load_image_with_orientation(source)
    img = resize_for_upload(img, max_edge)
    if mirror:
        img = mirror_horizontally(img)
    return encode_jpeg_base64(img, quality)
