"""
Size-bounded JPEG encoding for profile photos.

Downscales to MAX_WIDTH and then walks JPEG quality down in fixed steps until
the encoded bytes fit the budget. The walk is bounded: it stops at the quality
floor or after a hard attempt cap, whichever comes first, and then returns the
best attempt it has even if that is still over budget.
"""

import io
import logging
import math
from dataclasses import dataclass

from PIL import Image, ImageOps, UnidentifiedImageError

from qyou.services.errors import ValidationError

logger = logging.getLogger(__name__)

MAX_WIDTH = 800
DEFAULT_INITIAL_QUALITY = 0.9
DEFAULT_STEP = 0.05
DEFAULT_MIN_QUALITY = 0.1


@dataclass
class EncodedImage:
    data: bytes
    quality: float
    width: int
    height: int
    attempts: int
    within_budget: bool
    content_type: str = "image/jpeg"

    @property
    def size(self) -> int:
        return len(self.data)


def max_attempts(initial_quality: float, step: float, min_quality: float) -> int:
    """Upper bound on encode attempts: ceil((initial - min) / step) + 1."""
    # round() keeps 0.8 / 0.05 from turning into 16.000000000000004
    return math.ceil(round((initial_quality - min_quality) / step, 9)) + 1


def load_image(source) -> Image.Image:
    """Decode bytes (or pass through a Pillow image) with EXIF rotation applied."""
    if isinstance(source, Image.Image):
        img = source
    else:
        try:
            img = Image.open(io.BytesIO(source))
            img.load()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise ValidationError("The uploaded file is not a readable image") from e
    return ImageOps.exif_transpose(img)


def downscale(img: Image.Image, max_width: int = MAX_WIDTH) -> Image.Image:
    """Shrink so width <= max_width, keeping aspect ratio. Never upscales."""
    width, height = img.size
    if width <= max_width:
        return img
    scale = max_width / width
    new_size = (max_width, max(1, int(round(height * scale))))
    return img.resize(new_size, Image.LANCZOS)


def to_rgb(img: Image.Image) -> Image.Image:
    """JPEG has no alpha; composite transparent areas onto white."""
    if img.mode == "RGB":
        return img
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.split()[-1])
        return background
    return img.convert("RGB")


def _jpeg_bytes(img: Image.Image, quality: float) -> bytes:
    buffer = io.BytesIO()
    pil_quality = min(100, max(1, int(round(quality * 100))))
    img.save(buffer, format="JPEG", quality=pil_quality, optimize=True)
    return buffer.getvalue()


def encode(
    image,
    max_bytes: int,
    initial_quality: float = DEFAULT_INITIAL_QUALITY,
    step: float = DEFAULT_STEP,
    min_quality: float = DEFAULT_MIN_QUALITY,
) -> EncodedImage:
    """
    Encode ``image`` as JPEG under ``max_bytes`` if quality alone can get it there.

    Best effort: when the floor quality is reached first, the floor attempt is
    returned with ``within_budget=False``. Callers must check that flag rather
    than assume the output fits.
    """
    if max_bytes <= 0:
        raise ValueError("max_bytes must be positive")
    if step <= 0:
        raise ValueError("step must be positive")
    if min_quality > initial_quality:
        raise ValueError("min_quality cannot exceed initial_quality")

    img = to_rgb(downscale(load_image(image)))
    width, height = img.size
    cap = max_attempts(initial_quality, step, min_quality)

    best = None
    best_quality = initial_quality
    attempts = 0

    for i in range(cap):
        quality = round(initial_quality - i * step, 6)
        if quality < min_quality:
            break

        data = _jpeg_bytes(img, quality)
        attempts += 1
        logger.debug("encode attempt %d at q=%.2f -> %d bytes", attempts, quality, len(data))

        # keep the smallest attempt so the result never grows past the first one
        if best is None or len(data) <= len(best):
            best, best_quality = data, quality

        if len(data) <= max_bytes:
            break

    within_budget = len(best) <= max_bytes
    if not within_budget:
        logger.info(
            "photo still %d bytes at floor quality %.2f (budget %d)", len(best), best_quality, max_bytes
        )

    return EncodedImage(
        data=best,
        quality=best_quality,
        width=width,
        height=height,
        attempts=attempts,
        within_budget=within_budget,
    )
