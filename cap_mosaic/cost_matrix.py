"""Cell colour sampling and cell × slot cost-matrix construction."""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Sequence

import numpy as np
from PIL import Image

from cap_mosaic.color_utils import Color, colors_to_array, pairwise_distance
from cap_mosaic.errors import InvalidInput
from cap_mosaic.geometry import GridDimensions, cell_rects
from cap_mosaic.inventory import Tile, check_unique_ids

logger = logging.getLogger(__name__)

NEUTRAL_GREY = Color(128, 128, 128)


def as_rgb_array(image: np.ndarray | Image.Image) -> np.ndarray:
    """Coerce a Pillow image or pixel array into an (H, W, 3) uint8 array."""
    if isinstance(image, Image.Image):
        return np.asarray(image.convert("RGB"), dtype=np.uint8)

    pixels = np.asarray(image)
    if pixels.ndim == 2:
        pixels = np.repeat(pixels[:, :, np.newaxis], 3, axis=2)
    if pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
        msg = f"Expected an (H, W, 3) or (H, W, 4) image, got shape {pixels.shape}"
        raise InvalidInput(msg)
    if pixels.shape[0] == 0 or pixels.shape[1] == 0:
        msg = f"Image has no pixels (shape {pixels.shape})"
        raise InvalidInput(msg)
    if pixels.dtype == np.bool_ or not np.issubdtype(pixels.dtype, np.integer):
        msg = f"Expected integer pixel values 0..255, got dtype {pixels.dtype}"
        raise InvalidInput(msg)
    rgb = pixels[:, :, :3]
    if rgb.min() < 0 or rgb.max() > 255:
        msg = f"Pixel values must lie in 0..255, got {rgb.min()}..{rgb.max()}"
        raise InvalidInput(msg)
    return rgb.astype(np.uint8, copy=False)


def region_average_color(
    pixels: np.ndarray,
    x: float,
    y: float,
    width: float,
    height: float,
) -> Color:
    """Plain (unweighted) mean colour of a rectangle of *pixels*.

    The rectangle is snapped outwards to whole pixels and clipped to the
    image. An empty region yields neutral grey.
    """
    img_h, img_w = pixels.shape[:2]
    x0 = max(0, math.floor(x))
    y0 = max(0, math.floor(y))
    x1 = min(x0 + math.ceil(width), img_w)
    y1 = min(y0 + math.ceil(height), img_h)
    if x1 <= x0 or y1 <= y0:
        return NEUTRAL_GREY

    region = pixels[y0:y1, x0:x1, :3].reshape(-1, 3).astype(np.float64)
    mean = np.floor(region.mean(axis=0) + 0.5).astype(int)
    return Color(*mean)


def sample_cell_colors(
    image: np.ndarray | Image.Image,
    dimensions: GridDimensions,
) -> list[Color]:
    """Target colour of every grid cell, row-major."""
    pixels = as_rgb_array(image)
    img_h, img_w = pixels.shape[:2]
    return [
        region_average_color(pixels, rect.x, rect.y, rect.width, rect.height)
        for rect in cell_rects(dimensions, img_w, img_h)
    ]


def slot_tile_indices(tiles: Sequence[Tile]) -> np.ndarray:
    """Tile index of every slot, in slot order."""
    quantities = np.array([t.quantity for t in tiles], dtype=np.int64)
    return np.repeat(np.arange(len(tiles), dtype=np.int64), quantities)


def build_cost_matrix(
    cell_colors: Sequence[Color],
    tiles: Sequence[Tile],
    color_space: str = "redmean",
) -> np.ndarray:
    """Distance from every cell's target colour to every slot's cap colour.

    All slots of one tile share a colour, so distances are computed once
    per tile and the columns are then repeated for each unit of quantity.

    Returns:
        (num_cells, num_slots) float64 matrix. Zero slots gives a matrix
        with zero columns.
    """
    check_unique_ids(tiles)
    slot_tiles = slot_tile_indices(tiles)

    logger.info(
        "Building %dx%d cost matrix (%s, %d distinct caps) …",
        len(cell_colors), len(slot_tiles), color_space, len(tiles),
    )
    t0 = time.perf_counter()
    per_tile = pairwise_distance(
        colors_to_array(cell_colors),
        colors_to_array([t.color for t in tiles]),
        color_space,
    )
    cost = per_tile[:, slot_tiles]
    logger.info("Cost matrix ready  (%.1f s)", time.perf_counter() - t0)
    return cost
