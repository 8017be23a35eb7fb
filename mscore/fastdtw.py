# mscore/fastdtw.py
#
# FastDTW: multi-resolution approximation of mscore.dtw.
#
#   1) halve both sequences (pairwise mean, odd tail kept as-is)
#   2) solve the coarse problem recursively
#   3) project the coarse path to full resolution: (i, j) -> (2i, 2j)
#   4) re-run the DP only inside a band of `radius` around it
#
# The band is stored per row as an inclusive column range, so each level costs
# O((n + m) * radius) time and memory. The windowed refinement is the result.
# If the band does not connect (0, 0) to (n-1, m-1) we fall back to exact DTW
# and say so in `mode`.

from __future__ import annotations

import logging
from typing import List, Sequence, Tuple

import numpy as np

from mscore.config import FASTDTW_RADIUS
from mscore.dtw import (
    DTWResult,
    DistanceFn,
    Path,
    backtrack,
    build_result,
    dtw_arrays,
    euclidean_distance,
    row_costs,
)
from mscore.errors import InvalidInput
from mscore.features import as_matrix, check_same_width

logger = logging.getLogger(__name__)

_INF = float("inf")


# ========= Resolution helpers =========

def downsample_by_2(x: np.ndarray) -> np.ndarray:
    """Average consecutive pairs of rows; an odd trailing row is carried through."""
    n = x.shape[0]
    even = n - (n % 2)
    out = 0.5 * (x[0:even:2] + x[1:even:2])
    if n % 2:
        out = np.vstack([out, x[-1:]])
    return out


def project_path(path: Path) -> Path:
    return [(2 * i, 2 * j) for i, j in path]


def expand_window(projected: Path, n: int, m: int, radius: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Per-row column band (lo, hi), both inclusive, covering every cell within
    Chebyshev distance `radius` of a projected point. A row nothing reaches has
    lo > hi. For radius >= 1 the band is exactly the union of those squares;
    for radius 0 each row spans the projected points on it.
    """
    lo = np.full(n, m, dtype=int)
    hi = np.full(n, -1, dtype=int)
    for i, j in projected:
        r0, r1 = max(0, i - radius), min(n - 1, i + radius)
        if r0 > r1:
            continue
        lo[r0: r1 + 1] = np.minimum(lo[r0: r1 + 1], max(0, j - radius))
        hi[r0: r1 + 1] = np.maximum(hi[r0: r1 + 1], min(m - 1, j + radius))
    return lo, hi


# ========= Banded DP =========

class BandCost:
    """
    Accumulated cost held only inside a per-row band, indexed like the dense
    (n+1) x (m+1) matrix of mscore.dtw: D[0, 0] = 0, anything not held is +inf.
    """

    def __init__(self, lo: np.ndarray, hi: np.ndarray, m: int):
        self.lo: List[int] = [int(v) for v in lo]
        self.rows: List[List[float]] = [[_INF] * max(0, int(h) - int(l) + 1) for l, h in zip(lo, hi)]
        self.shape = (len(self.rows) + 1, m + 1)

    @property
    def cells(self) -> int:
        return sum(len(r) for r in self.rows)

    def __getitem__(self, key: Tuple[int, int]) -> float:
        i, j = key
        if i == 0:
            return 0.0 if j == 0 else _INF
        row = self.rows[i - 1]
        c = j - 1 - self.lo[i - 1]
        if 0 <= c < len(row):
            return row[c]
        return _INF


def banded_accumulated_cost(
    a: np.ndarray,
    b: np.ndarray,
    lo: np.ndarray,
    hi: np.ndarray,
    dist: DistanceFn = euclidean_distance,
) -> BandCost:
    """Same recurrence as mscore.dtw.accumulated_cost, evaluated only inside the band."""
    D = BandCost(lo, hi, b.shape[0])
    for i, row in enumerate(D.rows):
        if not row:
            continue
        j0 = D.lo[i]
        local = row_costs(a[i], b[j0: j0 + len(row)], dist)
        for c in range(len(row)):
            j = j0 + c  # cell (i + 1, j + 1) of the dense layout
            left = row[c - 1] if c > 0 else _INF
            row[c] = local[c] + min(D[i, j + 1], left, D[i, j])
    return D


# ========= Recursion =========

def _fast_dtw(
    a: np.ndarray,
    b: np.ndarray,
    radius: int,
    dist: DistanceFn,
    depth: int = 0,
) -> DTWResult:
    n, m = a.shape[0], b.shape[0]
    if min(n, m) <= 2 * radius + 1:
        return dtw_arrays(a, b, dist, note=f"base case at depth {depth}")

    coarse = _fast_dtw(downsample_by_2(a), downsample_by_2(b), radius, dist, depth + 1)
    lo, hi = expand_window(project_path(coarse.path), n, m, radius)
    D = banded_accumulated_cost(a, b, lo, hi, dist)

    if D[n, m] == _INF:
        logger.warning(
            "fastdtw window (radius=%d) does not connect %dx%d at depth %d; using exact DTW",
            radius, n, m, depth,
        )
        return dtw_arrays(
            a, b, dist,
            mode="fastdtw_fallback",
            note=f"window of radius {radius} disconnected at depth {depth}",
        )

    logger.debug("fastdtw depth=%d n=%d m=%d window_cells=%d", depth, n, m, D.cells)
    return build_result(
        D,
        backtrack(D),
        mode="fastdtw",
        note=f"windowed refinement, radius {radius}, {D.cells} cells",
    )


# ========= Public API =========

def fast_dtw(
    sequence_a: Sequence,
    sequence_b: Sequence,
    radius: int = FASTDTW_RADIUS,
    dist: DistanceFn = euclidean_distance,
) -> DTWResult:
    """
    Approximate DTW in O((n + m) * radius) per resolution level.

    Sequences with min(n, m) <= 2 * radius + 1 are solved exactly (mode "dtw").
    Otherwise mode is "fastdtw", or "fastdtw_fallback" when the refinement
    window was disconnected at this level and exact DTW was used instead.
    """
    if int(radius) != radius or radius < 0:
        raise InvalidInput("radius must be a non-negative integer", context={"radius": radius})
    a = as_matrix(sequence_a, "sequence_a")
    b = as_matrix(sequence_b, "sequence_b")
    check_same_width(a, b)
    return _fast_dtw(a, b, int(radius), dist)


__all__ = [
    "downsample_by_2",
    "project_path",
    "expand_window",
    "BandCost",
    "banded_accumulated_cost",
    "fast_dtw",
]
