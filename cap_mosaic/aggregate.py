"""Turn a solver assignment into a placement grid and usage statistics."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field

import numpy as np

from cap_mosaic.color_utils import Color
from cap_mosaic.errors import InternalInvariantViolation
from cap_mosaic.geometry import GridDimensions
from cap_mosaic.inventory import Slot, Tile
from cap_mosaic.solver_hungarian import UNASSIGNED

logger = logging.getLogger(__name__)

# shown where the inventory ran out
EMPTY_COLOR = Color(200, 200, 200)


@dataclass(frozen=True)
class AssignedCell:
    row: int
    col: int
    target_color: Color
    tile_id: str
    tile_name: str
    assigned_color: Color
    image: str | None
    cost: float


@dataclass(frozen=True)
class EmptyCell:
    row: int
    col: int
    target_color: Color
    tile_id: None = None
    assigned_color: Color = EMPTY_COLOR


GridCell = AssignedCell | EmptyCell


@dataclass(frozen=True)
class PlacementGrid:
    """Row-major 2-D grid of placed caps."""

    width: int
    height: int
    rows: list[list[GridCell]] = field(default_factory=list)

    def cell(self, row: int, col: int) -> GridCell:
        return self.rows[row][col]

    def __iter__(self) -> Iterator[GridCell]:
        for grid_row in self.rows:
            yield from grid_row

    def __len__(self) -> int:
        return self.width * self.height

    def tile_ids(self) -> list[list[str | None]]:
        return [[c.tile_id for c in grid_row] for grid_row in self.rows]

    def is_empty(self) -> bool:
        return all(isinstance(c, EmptyCell) for c in self)


@dataclass(frozen=True)
class TileUsage:
    id: str
    name: str
    color: Color
    original: int
    used: int
    remaining: int


@dataclass(frozen=True)
class UsageStats:
    per_tile: list[TileUsage]
    total_cells: int
    total_used: int
    total_remaining: int
    total_cost: float
    mean_cost: float
    empty_cells: int

    def usage_for(self, tile_id: str) -> TileUsage:
        for usage in self.per_tile:
            if usage.id == tile_id:
                return usage
        raise KeyError(tile_id)


def build_result(
    assignment: np.ndarray,
    cell_colors: Sequence[Color],
    slots: Sequence[Slot],
    tiles: Sequence[Tile],
    cost: np.ndarray,
    dimensions: GridDimensions,
) -> tuple[PlacementGrid, UsageStats]:
    """Reify *assignment* as a :class:`PlacementGrid` plus :class:`UsageStats`.

    Cells without a real slot become :class:`EmptyCell`. ``mean_cost`` is
    taken over all cells, empty ones included, and is ``0.0`` for a grid
    with no cells.
    """
    num_cells = len(cell_colors)
    if num_cells != dimensions.total_cells or len(assignment) != num_cells:
        logger.error(
            "Result shape mismatch: %d cells, %d assignments, grid %dx%d",
            num_cells, len(assignment), dimensions.width, dimensions.height,
        )
        msg = (
            f"Cannot lay out {len(assignment)} assignments for {num_cells} cells "
            f"on a {dimensions.width}x{dimensions.height} grid"
        )
        raise InternalInvariantViolation(msg)

    used = [0] * len(tiles)
    total_cost = 0.0
    empty = 0
    grid_rows: list[list[GridCell]] = []

    for row in range(dimensions.height):
        grid_row: list[GridCell] = []
        for col in range(dimensions.width):
            index = row * dimensions.width + col
            target = cell_colors[index]
            slot_index = int(assignment[index])
            if slot_index == UNASSIGNED:
                grid_row.append(EmptyCell(row, col, target))
                empty += 1
                continue
            if not 0 <= slot_index < len(slots):
                logger.error(
                    "Slot %d out of range (%d slots) at cell %d of %dx%d grid",
                    slot_index, len(slots), index, dimensions.width, dimensions.height,
                )
                msg = f"Cell {index} assigned to missing slot {slot_index}"
                raise InternalInvariantViolation(msg)

            slot = slots[slot_index]
            tile = tiles[slot.tile_index]
            cell_cost = float(cost[index, slot_index])
            used[slot.tile_index] += 1
            total_cost += cell_cost
            grid_row.append(AssignedCell(
                row, col, target, tile.id, tile.name, tile.color, tile.image, cell_cost,
            ))
        grid_rows.append(grid_row)

    per_tile = []
    for tile, count in zip(tiles, used, strict=True):
        remaining = tile.quantity - count
        if remaining < 0:
            logger.error(
                "Tile %r overused (%d of %d) on %dx%d grid",
                tile.id, count, tile.quantity, dimensions.width, dimensions.height,
            )
            msg = f"Tile {tile.id!r} used {count} times but only {tile.quantity} exist"
            raise InternalInvariantViolation(msg)
        per_tile.append(TileUsage(
            tile.id, tile.name, tile.color, tile.quantity, count, remaining,
        ))

    total_used = sum(used)
    stats = UsageStats(
        per_tile=per_tile,
        total_cells=num_cells,
        total_used=total_used,
        total_remaining=sum(u.remaining for u in per_tile),
        total_cost=total_cost,
        mean_cost=total_cost / num_cells if num_cells else 0.0,
        empty_cells=empty,
    )
    grid = PlacementGrid(dimensions.width, dimensions.height, grid_rows)
    return grid, stats
