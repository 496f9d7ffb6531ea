"""Colour value type, perceptual distance and vectorised cost kernels."""

from __future__ import annotations

import math
import operator
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import numpy as np
from skimage.color import rgb2lab

from cap_mosaic.errors import InvalidInput

COLOR_SPACES = ("redmean", "lab", "rgb")

_HEX_RE = re.compile(r"^#?([0-9a-f]{2})([0-9a-f]{2})([0-9a-f]{2})$", re.IGNORECASE)


@dataclass(frozen=True)
class Color:
    """An 8-bit RGB colour."""

    r: int
    g: int
    b: int

    def __post_init__(self) -> None:
        for name in ("r", "g", "b"):
            value = getattr(self, name)
            try:
                value = operator.index(value)
            except TypeError:
                msg = f"Colour channel {name}={value!r} is not an integer"
                raise InvalidInput(msg) from None
            if not 0 <= value <= 255:
                msg = f"Colour channel {name}={value} outside 0..255"
                raise InvalidInput(msg)
            # normalise numpy integers to plain ints
            object.__setattr__(self, name, int(value))

    @classmethod
    def from_hex(cls, text: str) -> Color:
        match = _HEX_RE.match(text.strip())
        if match is None:
            msg = f"Not a #RRGGBB colour: {text!r}"
            raise InvalidInput(msg)
        return cls(*(int(part, 16) for part in match.groups()))

    @classmethod
    def from_iterable(cls, values: Iterable[int]) -> Color:
        channels = list(values)
        if len(channels) != 3:
            msg = f"Expected 3 colour channels, got {len(channels)}"
            raise InvalidInput(msg)
        return cls(*channels)

    @property
    def hex(self) -> str:
        return f"#{self.r:02X}{self.g:02X}{self.b:02X}"

    def as_tuple(self) -> tuple[int, int, int]:
        return (self.r, self.g, self.b)


def color_distance(a: Color, b: Color) -> float:
    """Redmean weighted Euclidean distance between two colours.

    Red and blue weights shift with the mean red level, which tracks human
    perception better than plain RGB distance at almost no cost. The
    weights depend on the inputs, so this is not a strict metric.
    """
    r_mean = (a.r + b.r) / 2
    dr = a.r - b.r
    dg = a.g - b.g
    db = a.b - b.b
    return math.sqrt(
        (2 + r_mean / 256) * dr * dr
        + 4 * dg * dg
        + (2 + (255 - r_mean) / 256) * db * db
    )


def colors_to_array(colors: Sequence[Color]) -> np.ndarray:
    """Pack colours into a flat (N, 3) uint8 array."""
    if not colors:
        return np.zeros((0, 3), dtype=np.uint8)
    return np.array([c.as_tuple() for c in colors], dtype=np.uint8)


def rgb_to_lab(rgb: np.ndarray) -> np.ndarray:
    """Convert flat (N, 3) uint8 RGB → (N, 3) float64 CIELAB."""
    return rgb2lab(rgb.astype(np.float64).reshape(1, -1, 3) / 255.0).reshape(-1, 3)


def _redmean_block(t: np.ndarray, s: np.ndarray) -> np.ndarray:
    diff = t[:, np.newaxis, :] - s[np.newaxis, :, :]
    r_mean = (t[:, np.newaxis, 0] + s[np.newaxis, :, 0]) / 2
    return np.sqrt(
        (2 + r_mean / 256) * diff[..., 0] ** 2
        + 4 * diff[..., 1] ** 2
        + (2 + (255 - r_mean) / 256) * diff[..., 2] ** 2
    )


def _euclidean_block(t: np.ndarray, s: np.ndarray) -> np.ndarray:
    diff = t[:, np.newaxis, :] - s[np.newaxis, :, :]
    return np.sqrt(np.sum(diff ** 2, axis=2))


def pairwise_distance(
    targets: np.ndarray,
    sources: np.ndarray,
    color_space: str = "redmean",
    chunk_size: int = 512,
) -> np.ndarray:
    """Distance from every target colour to every source colour.

    Args:
        targets: (N, 3) uint8 RGB.
        sources: (M, 3) uint8 RGB.
        color_space: ``"redmean"``, ``"lab"`` or ``"rgb"``.
        chunk_size: Rows computed per batch (controls peak RAM).

    Returns:
        (N, M) float64 distance table.
    """
    if color_space not in COLOR_SPACES:
        msg = f"Unknown colour space {color_space!r}; expected one of {COLOR_SPACES}"
        raise InvalidInput(msg)

    n, m = len(targets), len(sources)
    cost = np.empty((n, m), dtype=np.float64)
    if n == 0 or m == 0:
        return cost

    if color_space == "lab":
        t = rgb_to_lab(targets)
        s = rgb_to_lab(sources)
        block = _euclidean_block
    else:
        t = targets.astype(np.float64)
        s = sources.astype(np.float64)
        block = _redmean_block if color_space == "redmean" else _euclidean_block

    for i in range(0, n, chunk_size):
        j = min(i + chunk_size, n)
        cost[i:j] = block(t[i:j], s)
    return cost


def contrast_color(background: Color) -> str:
    """Black or white, whichever reads better on *background*."""
    luminance = (
        0.299 * background.r + 0.587 * background.g + 0.114 * background.b
    ) / 255
    return "#000000" if luminance > 0.5 else "#FFFFFF"
