"""Grid sizing and cell layout for square and hexagonal packing."""

from __future__ import annotations

import math
import numbers
import operator
from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple

from cap_mosaic.errors import InvalidInput

# Row pitch of hexagonally packed circles, relative to their diameter.
HEX_VERTICAL_FACTOR = math.cos(math.radians(30))


class Packing(str, Enum):
    SQUARE = "square"
    HEX = "hex"

    @classmethod
    def parse(cls, value: str | Packing) -> Packing:
        if isinstance(value, Packing):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            msg = f"Unknown packing {value!r}; expected 'square' or 'hex'"
            raise InvalidInput(msg) from None


@dataclass(frozen=True)
class GridDimensions:
    width: int
    height: int
    total_cells: int
    packing: Packing = Packing.SQUARE


class CellRect(NamedTuple):
    """Source-image rectangle covered by one grid cell (pixel units)."""

    row: int
    col: int
    x: float
    y: float
    width: float
    height: float


def _check_image_size(image_width: float, image_height: float) -> None:
    for name, value in (("width", image_width), ("height", image_height)):
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            msg = f"Image {name} must be a number, got {value!r}"
            raise InvalidInput(msg)
        if not math.isfinite(value) or value <= 0:
            msg = f"Image {name} must be positive, got {value!r}"
            raise InvalidInput(msg)


def compute_dimensions(
    total_slots: int,
    image_width: float,
    image_height: float,
    packing: Packing | str = Packing.SQUARE,
) -> GridDimensions:
    """Largest grid of the image's aspect ratio that fits the inventory.

    The grid starts from ``sqrt(total * aspect)`` by ``sqrt(total / aspect)``
    and is then grown one column, then one row, at a time while the cell
    count still fits in *total_slots*. Hex rows are packed tighter by
    :data:`HEX_VERTICAL_FACTOR`, so the aspect ratio is stretched by the same
    factor to keep the physical mosaic proportional to the image. Every hex
    row keeps the full width even though the offset rows overhang by half a
    cell.

    Zero slots gives an empty ``0 x 0`` grid.
    """
    packing = Packing.parse(packing)
    _check_image_size(image_width, image_height)
    try:
        total = operator.index(total_slots)
    except TypeError:
        msg = f"Total slots must be an integer, got {total_slots!r}"
        raise InvalidInput(msg) from None
    if total < 0:
        msg = f"Total slots must be >= 0, got {total}"
        raise InvalidInput(msg)
    if total == 0:
        return GridDimensions(0, 0, 0, packing)

    aspect = image_width / image_height
    if packing is Packing.HEX:
        aspect /= HEX_VERTICAL_FACTOR

    width = max(1, math.floor(math.sqrt(total * aspect)))
    height = max(1, math.floor(math.sqrt(total / aspect)))

    # clamping a very thin image to one row/column can overshoot
    if width * height > total:
        if width >= height:
            width = max(1, total // height)
        else:
            height = max(1, total // width)

    while (width + 1) * height <= total:
        width += 1
    while width * (height + 1) <= total:
        height += 1

    return GridDimensions(width, height, width * height, packing)


def cell_rects(
    dimensions: GridDimensions,
    image_width: float,
    image_height: float,
) -> list[CellRect]:
    """Row-major source rectangles for every cell of *dimensions*.

    Square cells tile the image exactly. Hex cells are ``W / (width + 0.5)``
    wide so that the half-cell shift of the even rows (0, 2, ...) still fits,
    and rows step down by ``F`` times their height.
    """
    _check_image_size(image_width, image_height)
    w, h = dimensions.width, dimensions.height
    if w == 0 or h == 0:
        return []

    rects: list[CellRect] = []
    if dimensions.packing is Packing.HEX:
        cell_w = image_width / (w + 0.5)
        cell_h = image_height / (1 + (h - 1) * HEX_VERTICAL_FACTOR)
        for row in range(h):
            x_offset = cell_w / 2 if row % 2 == 0 else 0.0
            y = row * cell_h * HEX_VERTICAL_FACTOR
            for col in range(w):
                rects.append(CellRect(row, col, col * cell_w + x_offset, y, cell_w, cell_h))
    else:
        cell_w = image_width / w
        cell_h = image_height / h
        for row in range(h):
            for col in range(w):
                rects.append(CellRect(row, col, col * cell_w, row * cell_h, cell_w, cell_h))
    return rects
