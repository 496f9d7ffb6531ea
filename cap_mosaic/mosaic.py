"""End-to-end pipeline: plan the grid, build costs, solve, aggregate."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

import numpy as np
from PIL import Image

from cap_mosaic.aggregate import PlacementGrid, UsageStats, build_result
from cap_mosaic.color_utils import Color
from cap_mosaic.config import MosaicConfig
from cap_mosaic.cost_matrix import as_rgb_array, build_cost_matrix, sample_cell_colors
from cap_mosaic.errors import InvalidInput
from cap_mosaic.geometry import GridDimensions, Packing, compute_dimensions
from cap_mosaic.inventory import Tile, expand_slots, total_quantity
from cap_mosaic.solver_hungarian import CancelToken
from cap_mosaic.solvers import AssignmentBackend, get_solver

logger = logging.getLogger(__name__)

StageProgress = Callable[[str, int], None]

# percent of the progress bar reserved for each stage
_SOLVE_START = 10
_SOLVE_END = 95


@dataclass(frozen=True)
class MosaicResult:
    grid: PlacementGrid
    stats: UsageStats
    assignment: np.ndarray
    dimensions: GridDimensions


def plan_grid(
    total_slots: int,
    image_width: float,
    image_height: float,
    packing: Packing | str = Packing.HEX,
) -> GridDimensions:
    """Grid dimensions for *total_slots* caps over an image of the given size."""
    return compute_dimensions(total_slots, image_width, image_height, packing)


def _as_colors(values: Iterable[Color | Sequence[int]]) -> list[Color]:
    return [v if isinstance(v, Color) else Color.from_iterable(v) for v in values]


class _Reporter:
    """Maps stage and row progress onto a single 0-100 scale."""

    def __init__(self, callback: StageProgress | None) -> None:
        self.callback = callback
        self._last: tuple[str, int] | None = None

    def __call__(self, stage: str, percent: int) -> None:
        if self.callback is None or self._last == (stage, percent):
            return
        self._last = (stage, percent)
        self.callback(stage, percent)

    def rows(self, done: int, total: int) -> None:
        span = _SOLVE_END - _SOLVE_START
        self("Solving", _SOLVE_START + (span * done // total if total else span))


def generate_assignment(
    target_colors: Sequence[Color | Sequence[int]],
    tiles: Sequence[Tile],
    dimensions: GridDimensions | None = None,
    *,
    config: MosaicConfig | None = None,
    solver: AssignmentBackend | None = None,
    progress: StageProgress | None = None,
    cancel: CancelToken | None = None,
) -> MosaicResult:
    """Place the inventory on the grid with minimum total colour distance.

    Args:
        target_colors: Row-major target colour of each cell.
        tiles:         Cap inventory. Each unit of quantity is one slot.
        dimensions:    Grid the colours belong to; defaults to one row.
        config:        Supplies solver, colour space and worker count.
        solver:        Explicit backend, overriding ``config.solver``.
        progress:      ``progress(stage, percent)`` with coarse updates.
        cancel:        Cooperative cancellation token, checked per row.

    Returns:
        :class:`MosaicResult`. Cells left without a cap (inventory shorter
        than the grid, including an empty inventory) are
        :class:`~cap_mosaic.aggregate.EmptyCell`.

    Raises:
        InvalidInput:  colours do not match *dimensions*, bad inventory.
        Cancelled:     *cancel* was set during the solve.
    """
    cfg = config or MosaicConfig()
    colors = _as_colors(target_colors)
    if dimensions is None:
        dimensions = GridDimensions(len(colors), 1 if colors else 0, len(colors))
    if dimensions.total_cells != len(colors) or (
        dimensions.width * dimensions.height != dimensions.total_cells
    ):
        msg = (
            f"{len(colors)} target colours do not fill a "
            f"{dimensions.width}x{dimensions.height} grid"
        )
        raise InvalidInput(msg)

    slots = expand_slots(tiles)
    backend = solver or get_solver(cfg.solver, cfg.workers, cfg.parallel_min_columns)
    report = _Reporter(progress)
    t0 = time.perf_counter()

    report("Building cost matrix", 0)
    cost = build_cost_matrix(colors, tiles, cfg.color_space)

    report("Solving", _SOLVE_START)
    assignment = backend.solve(cost, cancel=cancel, progress=report.rows)

    report("Aggregating", _SOLVE_END)
    grid, stats = build_result(assignment, colors, slots, tiles, cost, dimensions)
    report("Done", 100)

    logger.info(
        "Placed %d/%d caps on %dx%d grid (%s)  total=%.1f mean=%.2f  (%.1f s)",
        stats.total_used, len(slots), dimensions.width, dimensions.height,
        backend.name, stats.total_cost, stats.mean_cost, time.perf_counter() - t0,
    )
    return MosaicResult(grid, stats, assignment, dimensions)


def generate_from_image(
    image: np.ndarray | Image.Image,
    tiles: Sequence[Tile],
    *,
    config: MosaicConfig | None = None,
    solver: AssignmentBackend | None = None,
    progress: StageProgress | None = None,
    cancel: CancelToken | None = None,
) -> MosaicResult:
    """Size the grid to the inventory, sample *image* and solve."""
    cfg = config or MosaicConfig()
    pixels = as_rgb_array(image)
    h, w = pixels.shape[:2]
    dimensions = plan_grid(total_quantity(tiles), w, h, cfg.packing)
    logger.info(
        "Grid: %dx%d = %d cells (%s) for %dx%d image",
        dimensions.width, dimensions.height, dimensions.total_cells,
        dimensions.packing.value, w, h,
    )
    if progress is not None:
        progress("Sampling image", 0)
    colors = sample_cell_colors(pixels, dimensions)
    return generate_assignment(
        colors, tiles, dimensions,
        config=cfg, solver=solver, progress=progress, cancel=cancel,
    )
