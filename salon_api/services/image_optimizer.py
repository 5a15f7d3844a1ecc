from io import BytesIO
from typing import Tuple
from PIL import Image, UnidentifiedImageError
from salon_api.core.errors import ValidationError
from salon_api.models.db_models import ImageType

DEFAULT_MAX_SIZE = (1920, 1080)
BEFORE_AFTER_MAX_SIZE = (800, 800)
THUMBNAIL_SIZE = (300, 300)


def _open(content: bytes) -> Image.Image:
    try:
        img = Image.open(BytesIO(content))
        img.load()
    except (UnidentifiedImageError, OSError):
        raise ValidationError("El archivo no es una imagen válida")
    if img.mode not in ("RGB", "RGBA"):
        img = img.convert("RGBA" if "transparency" in img.info else "RGB")
    return img


def _encode(img: Image.Image, quality: int) -> bytes:
    buffer = BytesIO()
    img.save(buffer, format="WEBP", quality=quality)
    return buffer.getvalue()


def optimize(content: bytes, image_type: ImageType = ImageType.GALLERY) -> Tuple[bytes, Tuple[int, int]]:
    """Downscales (never upscales) and re-encodes as WEBP. Returns (bytes, (width, height))."""
    img = _open(content)
    if image_type == ImageType.BEFORE_AFTER:
        max_size, quality = BEFORE_AFTER_MAX_SIZE, 85
    else:
        max_size, quality = DEFAULT_MAX_SIZE, 80
    img.thumbnail(max_size, Image.Resampling.LANCZOS)
    return _encode(img, quality), img.size


def make_thumbnail(content: bytes) -> bytes:
    img = _open(content)
    img.thumbnail(THUMBNAIL_SIZE, Image.Resampling.LANCZOS)
    return _encode(img, 75)
