"""Centralised configuration via a frozen dataclass."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class MosaicConfig:
    """All tuneable parameters for a mosaic run.

    Attributes:
        packing:              Grid layout - "hex" (offset rows) or "square".
        solver:               "hungarian" (optimal), "scipy" (optimal, compiled)
                              or "greedy" (fast preview, not optimal).
        color_space:          Distance metric - "redmean", "lab" or "rgb".
        workers:              Threads used for the Hungarian column scan.
        parallel_min_columns: Matrix size from which the scan is split across
                              *workers* threads.
        cap_sample_size:      Side length cap photos are reduced to before
                              their colour is extracted.
        output_dir:           Folder for CSV exports.
    """

    # Grid
    packing: str = "hex"

    # Solver
    solver: str = "hungarian"  # "hungarian" | "scipy" | "greedy"
    color_space: str = "redmean"
    workers: int = 1
    parallel_min_columns: int = 2048

    # Cap scanning
    cap_sample_size: int = 100

    # Output
    output_dir: Path = field(default_factory=lambda: Path("output"))

    SUPPORTED_EXTENSIONS: frozenset[str] = frozenset(
        {".jpg", ".jpeg", ".png", ".bmp", ".tiff", ".tif", ".webp", ".jfif"}
    )
