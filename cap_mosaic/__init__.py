"""
Cap Mosaic
==========

Lay a fixed inventory of coloured bottle caps over a target image so that
the *total* colour difference is as small as possible. Grid size follows
the inventory and the image's aspect ratio, in square or hexagonal packing.
Ships three assignment backends:

- **Hungarian** (optimal, pure numpy, cancellable)
- **scipy** ``linear_sum_assignment`` (optimal, compiled)
- **Greedy** (fast preview, not optimal)
"""

__version__ = "1.0.0"

from cap_mosaic.aggregate import (
    EMPTY_COLOR,
    AssignedCell,
    EmptyCell,
    PlacementGrid,
    TileUsage,
    UsageStats,
    build_result,
)
from cap_mosaic.color_utils import Color, color_distance
from cap_mosaic.config import MosaicConfig
from cap_mosaic.cost_matrix import build_cost_matrix, sample_cell_colors
from cap_mosaic.errors import (
    Cancelled,
    InternalInvariantViolation,
    InvalidInput,
    MosaicError,
)
from cap_mosaic.geometry import (
    HEX_VERTICAL_FACTOR,
    GridDimensions,
    Packing,
    compute_dimensions,
)
from cap_mosaic.inventory import Slot, Tile, expand_slots, load_inventory
from cap_mosaic.mosaic import (
    MosaicResult,
    generate_assignment,
    generate_from_image,
    plan_grid,
)
from cap_mosaic.solver_hungarian import UNASSIGNED, HungarianSolver, solve_hungarian
from cap_mosaic.solvers import get_solver

__all__ = [
    "EMPTY_COLOR",
    "HEX_VERTICAL_FACTOR",
    "UNASSIGNED",
    "AssignedCell",
    "Cancelled",
    "Color",
    "EmptyCell",
    "GridDimensions",
    "HungarianSolver",
    "InternalInvariantViolation",
    "InvalidInput",
    "MosaicConfig",
    "MosaicError",
    "MosaicResult",
    "Packing",
    "PlacementGrid",
    "Slot",
    "Tile",
    "TileUsage",
    "UsageStats",
    "build_cost_matrix",
    "build_result",
    "color_distance",
    "compute_dimensions",
    "expand_slots",
    "generate_assignment",
    "generate_from_image",
    "get_solver",
    "load_inventory",
    "plan_grid",
    "sample_cell_colors",
    "solve_hungarian",
]
