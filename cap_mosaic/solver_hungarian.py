"""Optimal cell → slot assignment via the Hungarian (Kuhn-Munkres) algorithm.

This is the shortest-augmenting-path formulation with row and column
potentials, O(n³) time and O(n²) memory on the matrix padded to
``n = max(rows, cols)``. Rows are added one at a time; each row runs a
Dijkstra-like search over reduced costs ``cost[i][j] - u[i] - v[j]`` until
it reaches a free column, then flips the alternating path.

The outer row loop is inherently sequential (every row builds on the
potentials left by the previous ones). The column scan inside one search
step is vectorised with numpy and, for large matrices, may be split across
a thread pool; the chunks are joined before the potentials move on.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from typing import Protocol

import numpy as np

from cap_mosaic.errors import Cancelled, InternalInvariantViolation, InvalidInput

logger = logging.getLogger(__name__)

UNASSIGNED = -1

RowProgress = Callable[[int, int], None]


class CancelToken(Protocol):
    """Anything with ``is_set()``, e.g. :class:`threading.Event`."""

    def is_set(self) -> bool: ...


def validate_cost_matrix(cost: np.ndarray | Sequence[Sequence[float]]) -> np.ndarray:
    """Return *cost* as a 2-D float64 array or raise :class:`InvalidInput`.

    Ragged rows, non-finite or negative entries are rejected. Arrays with
    zero rows or zero columns are accepted; a bare ``[]`` is not, since its
    column count is unknown.
    """
    if isinstance(cost, np.ndarray):
        arr = cost
    else:
        try:
            rows = [list(row) for row in cost]
        except TypeError:
            msg = "Cost matrix must be a sequence of rows"
            raise InvalidInput(msg) from None
        if not rows:
            msg = "Cost matrix is empty; pass a (0, m) or (n, 0) array instead"
            raise InvalidInput(msg)
        widths = {len(row) for row in rows}
        if len(widths) > 1:
            msg = f"Cost matrix is ragged (row lengths {sorted(widths)})"
            raise InvalidInput(msg)
        try:
            arr = np.array(rows, dtype=np.float64)
        except (TypeError, ValueError) as exc:
            msg = f"Cost matrix has non-numeric entries ({exc})"
            raise InvalidInput(msg) from exc

    if arr.ndim != 2:
        msg = f"Cost matrix must be 2-D, got shape {arr.shape}"
        raise InvalidInput(msg)
    try:
        arr = arr.astype(np.float64, copy=False)
    except (TypeError, ValueError) as exc:
        msg = f"Cost matrix has non-numeric entries ({exc})"
        raise InvalidInput(msg) from exc
    if arr.size:
        if not np.all(np.isfinite(arr)):
            msg = "Cost matrix contains NaN or infinite entries"
            raise InvalidInput(msg)
        if np.any(arr < 0):
            msg = f"Cost matrix contains negative entries (min {arr.min():g})"
            raise InvalidInput(msg)
    return arr


def _scan_columns(
    cost_row: np.ndarray,
    u_i0: float,
    v: np.ndarray,
    minv: np.ndarray,
    way: np.ndarray,
    used: np.ndarray,
    j0: int,
    lo: int,
    hi: int,
) -> tuple[float, int]:
    """Relax columns ``lo..hi-1`` against row ``i0``; return their min slack.

    Writes only ``minv[lo:hi]`` and ``way[lo:hi]``, so disjoint ranges can
    be scanned concurrently. The first minimum in column order wins ties.
    """
    free = ~used[lo:hi]
    cur = cost_row[lo - 1:hi - 1] - u_i0 - v[lo:hi]
    better = free & (cur < minv[lo:hi])
    minv[lo:hi][better] = cur[better]
    way[lo:hi][better] = j0

    slack = np.where(free, minv[lo:hi], np.inf)
    k = int(np.argmin(slack))
    return float(slack[k]), lo + k


class HungarianSolver:
    """Kuhn-Munkres solver for rectangular non-negative cost matrices.

    Args:
        workers: Threads for the column scan. ``1`` keeps it on the
            calling thread.
        parallel_min_columns: Padded size from which the scan is split
            across *workers* threads. Smaller matrices do not amortise
            the hand-off.
    """

    name = "hungarian"

    def __init__(self, workers: int = 1, parallel_min_columns: int = 2048) -> None:
        if workers < 1:
            msg = f"workers must be >= 1, got {workers}"
            raise InvalidInput(msg)
        self.workers = workers
        self.parallel_min_columns = parallel_min_columns

    def solve(
        self,
        cost: np.ndarray | Sequence[Sequence[float]],
        *,
        cancel: CancelToken | None = None,
        progress: RowProgress | None = None,
    ) -> np.ndarray:
        """Minimum-cost injective assignment of rows (cells) to columns (slots).

        Returns:
            (rows,) int64 array; entry ``i`` is the column assigned to row
            ``i`` or :data:`UNASSIGNED`. Exactly ``min(rows, cols)`` rows are
            assigned.

        Raises:
            InvalidInput: malformed matrix.
            Cancelled: *cancel* was set before a row started.
        """
        matrix = validate_cost_matrix(cost)
        rows, cols = matrix.shape
        if rows == 0:
            return np.empty(0, dtype=np.int64)
        if cols == 0:
            if progress is not None:
                progress(rows, rows)
            return np.full(rows, UNASSIGNED, dtype=np.int64)

        n = max(rows, cols)
        padded = np.zeros((n, n), dtype=np.float64)
        padded[:rows, :cols] = matrix

        logger.info("Running Hungarian on %dx%d (padded to %d) …", rows, cols, n)
        t0 = time.perf_counter()
        with self._column_scanner(n) as scan:
            p = _augment_rows(padded, scan, cancel, progress)
        logger.info("Assignment solved  (%.1f s)", time.perf_counter() - t0)

        return decode_assignment(p, rows, cols)

    @contextmanager
    def _column_scanner(self, n: int) -> Iterator[Callable[..., tuple[float, int]]]:
        workers = min(self.workers, n)
        if workers <= 1 or n < self.parallel_min_columns:
            def scan_all(cost_row, u_i0, v, minv, way, used, j0):
                return _scan_columns(cost_row, u_i0, v, minv, way, used, j0, 1, n + 1)

            yield scan_all
            return

        edges = np.linspace(1, n + 1, workers + 1).astype(int)
        bounds = [(int(a), int(b)) for a, b in zip(edges[:-1], edges[1:]) if b > a]
        logger.debug("Column scan split into %d chunks", len(bounds))

        with ThreadPoolExecutor(max_workers=len(bounds)) as executor:
            def scan_chunks(cost_row, u_i0, v, minv, way, used, j0):
                futures = [
                    executor.submit(
                        _scan_columns, cost_row, u_i0, v, minv, way, used, j0, lo, hi,
                    )
                    for lo, hi in bounds
                ]
                # join every chunk, then merge in column order
                best, best_j = np.inf, 0
                for future in futures:
                    delta, j = future.result()
                    if delta < best:
                        best, best_j = delta, j
                return best, best_j

            yield scan_chunks


def _augment_rows(
    cost: np.ndarray,
    scan: Callable[..., tuple[float, int]],
    cancel: CancelToken | None,
    progress: RowProgress | None,
) -> np.ndarray:
    """Run the row-by-row augmentation on a square matrix; return ``p``.

    ``p[j]`` is the 1-indexed row matched to 1-indexed column ``j``;
    column 0 is the virtual source of each search.
    """
    n = cost.shape[0]
    u = np.zeros(n + 1, dtype=np.float64)
    v = np.zeros(n + 1, dtype=np.float64)
    p = np.zeros(n + 1, dtype=np.int64)
    way = np.zeros(n + 1, dtype=np.int64)
    log_every = max(1, n // 10)

    for i in range(1, n + 1):
        if cancel is not None and cancel.is_set():
            logger.info("Hungarian cancelled after %d/%d rows", i - 1, n)
            msg = f"Assignment cancelled after {i - 1} of {n} rows"
            raise Cancelled(msg)

        p[0] = i
        j0 = 0
        minv = np.full(n + 1, np.inf)
        used = np.zeros(n + 1, dtype=bool)

        while True:
            used[j0] = True
            i0 = p[j0]
            delta, j1 = scan(cost[i0 - 1], u[i0], v, minv, way, used, j0)

            # rows of visited columns are distinct, so fancy += is safe
            u[p[used]] += delta
            v[used] -= delta
            minv[~used] -= delta

            j0 = j1
            if p[j0] == 0:
                break

        while True:
            j1 = way[j0]
            p[j0] = p[j1]
            j0 = j1
            if j0 == 0:
                break

        if i % log_every == 0:
            logger.debug("  Hungarian %5.1f%%  (%d/%d rows)", i / n * 100, i, n)
        if progress is not None:
            progress(i, n)

    return p


def check_assignment(assignment: np.ndarray, rows: int, cols: int) -> None:
    """Raise :class:`InternalInvariantViolation` unless *assignment* is sane."""
    problem = None
    if assignment.shape != (rows,):
        problem = f"length {assignment.shape} != {rows}"
    else:
        matched = assignment[assignment != UNASSIGNED]
        if np.any(matched < 0) or np.any(matched >= cols):
            problem = "slot index out of range"
        elif len(np.unique(matched)) != len(matched):
            problem = "slot assigned twice"
        elif len(matched) != min(rows, cols):
            problem = f"{len(matched)} matches, expected {min(rows, cols)}"
    if problem is not None:
        logger.error(
            "Assignment invariant violated for %dx%d matrix: %s", rows, cols, problem,
        )
        msg = f"Invalid assignment for {rows}x{cols} matrix: {problem}"
        raise InternalInvariantViolation(msg)


def decode_assignment(p: np.ndarray, rows: int, cols: int) -> np.ndarray:
    """Turn the column → row map into a row → column assignment.

    Matches to padding (dummy rows past *rows*, dummy columns past *cols*)
    are dropped, leaving those real rows :data:`UNASSIGNED`.
    """
    assignment = np.full(rows, UNASSIGNED, dtype=np.int64)
    for j in range(1, len(p)):
        i = int(p[j])
        if 0 < i <= rows and j <= cols:
            assignment[i - 1] = j - 1
    check_assignment(assignment, rows, cols)
    return assignment


def assignment_cost(cost: np.ndarray, assignment: np.ndarray) -> float:
    """Sum of ``cost[i][assignment[i]]`` over assigned rows."""
    rows = np.flatnonzero(assignment != UNASSIGNED)
    if rows.size == 0:
        return 0.0
    return float(np.sum(np.asarray(cost)[rows, assignment[rows]]))


def solve_hungarian(
    cost: np.ndarray | Sequence[Sequence[float]],
    *,
    workers: int = 1,
    cancel: CancelToken | None = None,
    progress: RowProgress | None = None,
) -> np.ndarray:
    """One-shot :meth:`HungarianSolver.solve`."""
    return HungarianSolver(workers=workers).solve(cost, cancel=cancel, progress=progress)
