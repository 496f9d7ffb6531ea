"""Greedy single-pass matching, the fast preview mode.

Walks the cells in row-major order and hands each one the closest cap that
is still free. Much faster than the Hungarian solver but not optimal: early
cells take the good matches that later cells needed more.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence

import numpy as np

from cap_mosaic.errors import Cancelled
from cap_mosaic.solver_hungarian import (
    UNASSIGNED,
    CancelToken,
    RowProgress,
    check_assignment,
    validate_cost_matrix,
)

logger = logging.getLogger(__name__)


class GreedySolver:
    name = "greedy"

    def solve(
        self,
        cost: np.ndarray | Sequence[Sequence[float]],
        *,
        cancel: CancelToken | None = None,
        progress: RowProgress | None = None,
    ) -> np.ndarray:
        matrix = validate_cost_matrix(cost)
        rows, cols = matrix.shape
        assignment = np.full(rows, UNASSIGNED, dtype=np.int64)
        taken = np.zeros(cols, dtype=bool)

        logger.info("Running greedy matching on %dx%d …", rows, cols)
        t0 = time.perf_counter()
        for i in range(rows):
            if cancel is not None and cancel.is_set():
                msg = f"Greedy matching cancelled after {i} of {rows} rows"
                raise Cancelled(msg)
            if cols and not taken.all():
                # first free minimum, i.e. the earliest cap in inventory order
                j = int(np.argmin(np.where(taken, np.inf, matrix[i])))
                assignment[i] = j
                taken[j] = True
            if progress is not None:
                progress(i + 1, rows)
        logger.info("Greedy matching done  (%.1f s)", time.perf_counter() - t0)

        check_assignment(assignment, rows, cols)
        return assignment
