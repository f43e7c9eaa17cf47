"""
Image Normalizer

Turns an uploaded image of any format and resolution into the flat,
channel-major float32 tensor the detector expects ([1, 3, 640, 640] once
reshaped), with values scaled to [0, 1].
"""

import io

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from src.core.exceptions import DecodeError

INPUT_SIZE = 640
CHANNELS = 3

RESIZE_COVER = "cover"
RESIZE_STRETCH = "stretch"


def decode_image(image_bytes: bytes) -> Image.Image:
    """Decode raw bytes into an RGB image (alpha dropped, greyscale expanded)."""
    if not image_bytes:
        raise DecodeError("Empty image payload")

    try:
        image = Image.open(io.BytesIO(image_bytes))
        image.load()
        return image.convert("RGB")
    except (UnidentifiedImageError, Image.DecompressionBombError) as e:
        raise DecodeError("Unsupported or corrupt image", details={"reason": str(e)}) from e
    except (OSError, ValueError, SyntaxError) as e:
        # Pillow reports truncated data as OSError and broken PNG chunks as SyntaxError
        raise DecodeError("Unable to decode image", details={"reason": str(e)}) from e


def resize_image(image: Image.Image, size: int = INPUT_SIZE, mode: str = RESIZE_COVER) -> Image.Image:
    """Resize to exactly size x size.

    cover: scale to fill, then centre crop (aspect ratio kept).
    stretch: plain resize, aspect ratio ignored.
    """
    if mode == RESIZE_COVER:
        return ImageOps.fit(image, (size, size), method=Image.Resampling.LANCZOS)
    if mode == RESIZE_STRETCH:
        return image.resize((size, size), resample=Image.Resampling.LANCZOS)
    raise ValueError(f"Unknown resize mode: {mode}")


def to_planar(interleaved: np.ndarray, size: int = INPUT_SIZE) -> np.ndarray:
    """Re-layout a flat pixel-major (HWC) buffer into a flat channel-major (CHW) one.

    interleaved[row * size * 3 + col * 3 + c] -> planar[c * size * size + row * size + col]
    """
    hwc = interleaved.reshape(size, size, CHANNELS)
    return np.ascontiguousarray(hwc.transpose(2, 0, 1)).reshape(-1)


def to_interleaved(planar: np.ndarray, size: int = INPUT_SIZE) -> np.ndarray:
    """Inverse of to_planar."""
    chw = planar.reshape(CHANNELS, size, size)
    return np.ascontiguousarray(chw.transpose(1, 2, 0)).reshape(-1)


def normalize_image(
    image_bytes: bytes,
    size: int = INPUT_SIZE,
    resize_mode: str = RESIZE_COVER
) -> np.ndarray:
    """
    Normalize an uploaded image for the detector.

    Args:
        image_bytes: Raw file content (any format Pillow can decode)
        size: Output width and height
        resize_mode: "cover" or "stretch"

    Returns:
        Flat float32 array of length 3 * size * size in channel-major order

    Raises:
        DecodeError: If the bytes are not a decodable image
    """
    image = resize_image(decode_image(image_bytes), size=size, mode=resize_mode)

    # Row-major, channel-interleaved bytes: len == size * size * 3
    interleaved = np.asarray(image, dtype=np.uint8).reshape(-1)
    scaled = interleaved.astype(np.float32) / 255.0

    return to_planar(scaled, size=size)
