"""Reference-sheet exports: cap codes, CSV grid and legend."""

from __future__ import annotations

import csv
import io
from collections.abc import Sequence
from pathlib import Path
from typing import NamedTuple

from cap_mosaic.aggregate import PlacementGrid
from cap_mosaic.color_utils import contrast_color
from cap_mosaic.inventory import Tile

EMPTY_CODE = "-"


class LegendEntry(NamedTuple):
    code: str
    name: str
    hex: str
    text_color: str
    quantity: int


def index_to_code(index: int) -> str:
    """0 → A, 25 → Z, 26 → AA, 27 → AB, ..."""
    code = ""
    n = index
    while True:
        code = chr(ord("A") + n % 26) + code
        n = n // 26 - 1
        if n < 0:
            return code


def cap_codes(tiles: Sequence[Tile]) -> dict[str, str]:
    return {tile.id: index_to_code(i) for i, tile in enumerate(tiles)}


def grid_to_csv(grid: PlacementGrid, codes: dict[str, str]) -> str:
    """One CSV line per grid row, each cell its cap code (``-`` when empty)."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    for grid_row in grid.rows:
        writer.writerow([codes.get(cell.tile_id, EMPTY_CODE) for cell in grid_row])
    return buf.getvalue()


def legend(tiles: Sequence[Tile], codes: dict[str, str]) -> list[LegendEntry]:
    return [
        LegendEntry(
            codes[tile.id], tile.name or tile.id, tile.color.hex,
            contrast_color(tile.color), tile.quantity,
        )
        for tile in tiles
    ]


def legend_to_csv(entries: Sequence[LegendEntry]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(["code", "name", "color", "quantity"])
    for entry in entries:
        writer.writerow([entry.code, entry.name, entry.hex, entry.quantity])
    return buf.getvalue()


def write_reference(
    grid: PlacementGrid,
    tiles: Sequence[Tile],
    output_dir: Path,
    stem: str,
) -> tuple[Path, Path]:
    """Write ``<stem>_grid.csv`` and ``<stem>_legend.csv``; return both paths."""
    output_dir.mkdir(parents=True, exist_ok=True)
    codes = cap_codes(tiles)
    grid_path = output_dir / f"{stem}_grid.csv"
    legend_path = output_dir / f"{stem}_legend.csv"
    grid_path.write_text(grid_to_csv(grid, codes), encoding="utf-8")
    legend_path.write_text(legend_to_csv(legend(tiles, codes)), encoding="utf-8")
    return grid_path, legend_path
