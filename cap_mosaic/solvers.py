"""Interchangeable assignment backends behind one ``solve`` method."""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from typing import Protocol

import numpy as np
from scipy.optimize import linear_sum_assignment

from cap_mosaic.errors import Cancelled, InvalidInput
from cap_mosaic.solver_greedy import GreedySolver
from cap_mosaic.solver_hungarian import (
    UNASSIGNED,
    CancelToken,
    HungarianSolver,
    RowProgress,
    check_assignment,
    validate_cost_matrix,
)

logger = logging.getLogger(__name__)

SOLVERS = ("hungarian", "scipy", "greedy")


class AssignmentBackend(Protocol):
    name: str

    def solve(
        self,
        cost: np.ndarray | Sequence[Sequence[float]],
        *,
        cancel: CancelToken | None = None,
        progress: RowProgress | None = None,
    ) -> np.ndarray: ...


class ScipySolver:
    """Optimal assignment via scipy's compiled ``linear_sum_assignment``.

    The whole solve is a single native call, so cancellation is only
    honoured before it starts and progress jumps from 0 to done.
    """

    name = "scipy"

    def solve(
        self,
        cost: np.ndarray | Sequence[Sequence[float]],
        *,
        cancel: CancelToken | None = None,
        progress: RowProgress | None = None,
    ) -> np.ndarray:
        matrix = validate_cost_matrix(cost)
        rows, cols = matrix.shape
        if cancel is not None and cancel.is_set():
            msg = "Assignment cancelled before it started"
            raise Cancelled(msg)
        if progress is not None:
            progress(0, rows)

        assignment = np.full(rows, UNASSIGNED, dtype=np.int64)
        if rows and cols:
            logger.info("Running linear_sum_assignment on %dx%d …", rows, cols)
            t0 = time.perf_counter()
            row_idx, col_idx = linear_sum_assignment(matrix)
            logger.info("Assignment solved  (%.1f s)", time.perf_counter() - t0)
            assignment[row_idx] = col_idx

        if progress is not None:
            progress(rows, rows)
        check_assignment(assignment, rows, cols)
        return assignment


def get_solver(
    name: str = "hungarian",
    workers: int = 1,
    parallel_min_columns: int = 2048,
) -> AssignmentBackend:
    """Backend for *name*: ``"hungarian"``, ``"scipy"`` or ``"greedy"``."""
    if name == "hungarian":
        return HungarianSolver(workers=workers, parallel_min_columns=parallel_min_columns)
    if name == "scipy":
        return ScipySolver()
    if name == "greedy":
        return GreedySolver()
    msg = f"Unknown solver {name!r}; expected one of {SOLVERS}"
    raise InvalidInput(msg)
