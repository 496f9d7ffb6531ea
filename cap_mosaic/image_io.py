"""Image loading and cap-photo colour extraction."""

from __future__ import annotations

import math
from pathlib import Path

import numpy as np
from PIL import Image

from cap_mosaic.color_utils import Color
from cap_mosaic.errors import InvalidInput

DEFAULT_CAP_COLOR = Color(128, 128, 128)


def shrink_size(width: int, height: int, max_side: int) -> tuple[int, int]:
    """(w, h) scaled so the longest side equals *max_side*, neither below 1."""
    if max_side < 1:
        msg = f"max_side must be at least 1, got {max_side}"
        raise InvalidInput(msg)
    scale = max_side / max(width, height)
    return max(1, round(width * scale)), max(1, round(height * scale))


def _open(path: str | Path) -> Image.Image:
    try:
        return Image.open(path)
    except OSError as exc:
        msg = f"Cannot read image {path}: {exc}"
        raise InvalidInput(msg) from exc


def load_image(path: str | Path, max_side: int | None = None) -> np.ndarray:
    """Load an image as RGB, optionally shrinking its longest side to *max_side*.

    Images already smaller than *max_side* are left alone.

    Returns:
        (H, W, 3) uint8 array.
    """
    img = _open(path).convert("RGB")
    if max_side is not None and max(img.width, img.height) > max_side:
        w, h = shrink_size(img.width, img.height, max_side)
        img = img.resize((w, h), Image.LANCZOS)
    return np.array(img, dtype=np.uint8)


def extract_cap_color(
    image: str | Path | Image.Image,
    sample_size: int = 100,
) -> Color:
    """Representative colour of a photographed cap.

    The photo is squashed to a square of at most *sample_size* pixels and
    averaged with weights falling from 1 at the centre to 0.5 at the
    corners, so the printed middle of the cap counts more than the rim and
    background. Pixels with alpha below 128 are ignored; if nothing is
    left the result is neutral grey.
    """
    img = image if isinstance(image, Image.Image) else _open(image)
    size = max(1, min(img.width, img.height, sample_size))
    rgba = np.asarray(
        img.convert("RGBA").resize((size, size), Image.BILINEAR), dtype=np.float64,
    )

    centre = size / 2
    ys, xs = np.mgrid[0:size, 0:size]
    dist = np.sqrt((xs - centre) ** 2 + (ys - centre) ** 2)
    weight = 1 - (dist / math.hypot(centre, centre)) * 0.5
    weight[rgba[:, :, 3] < 128] = 0.0

    total = weight.sum()
    if total == 0:
        return DEFAULT_CAP_COLOR
    rgb = (rgba[:, :, :3] * weight[:, :, np.newaxis]).sum(axis=(0, 1)) / total
    return Color(*np.floor(rgb + 0.5).astype(int))
