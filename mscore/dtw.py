# mscore/dtw.py
#
# Exact Dynamic Time Warping over multi-dimensional feature sequences.
#
# Responsibilities:
#   - fill the (n+1) x (m+1) accumulated cost matrix
#   - backtrack a deterministic warping path (ties: diagonal, then up, then left)
#   - normalize total cost by max(n, m) so clips of different length compare
#
# O(n*m) time and space; long sequences should go through mscore.fastdtw.
# This module is IO-free and never mutates its inputs.

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Sequence, Tuple

import numpy as np

from mscore.errors import InvalidInput
from mscore.features import as_matrix, check_same_width

logger = logging.getLogger(__name__)

DistanceFn = Callable[[np.ndarray, np.ndarray], float]
Path = List[Tuple[int, int]]


# ========= Result =========

@dataclass
class DTWResult:
    distance: float
    path: Path = field(default_factory=list)
    normalized_distance: float = 0.0
    mode: str = "dtw"
    note: str = ""


# ========= Distance metrics =========

def _euclidean_rows(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    d = x - y
    return np.sqrt(np.sum(d * d, axis=-1))


def _manhattan_rows(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    return np.sum(np.abs(x - y), axis=-1)


def euclidean_distance(a: np.ndarray, b: np.ndarray) -> float:
    return float(_euclidean_rows(np.asarray(a, float), np.asarray(b, float)))


def manhattan_distance(a: np.ndarray, b: np.ndarray) -> float:
    return float(_manhattan_rows(np.asarray(a, float), np.asarray(b, float)))


# Built-in metrics with a broadcasting form (whole matrix in one numpy op)
_VECTORIZED: Dict[DistanceFn, Callable[[np.ndarray, np.ndarray], np.ndarray]] = {
    euclidean_distance: _euclidean_rows,
    manhattan_distance: _manhattan_rows,
}


# ========= Core helpers =========

def row_costs(x: np.ndarray, ys: np.ndarray, dist: DistanceFn = euclidean_distance) -> List[float]:
    """dist(x, y) for every row y of `ys`."""
    vec = _VECTORIZED.get(dist)
    if vec is not None:
        return vec(x[None, :], ys).tolist()
    return [float(dist(x, y)) for y in ys]


def local_cost_matrix(
    a: np.ndarray,
    b: np.ndarray,
    dist: DistanceFn = euclidean_distance,
) -> np.ndarray:
    """(n, m) matrix of dist(a[i], b[j])."""
    vec = _VECTORIZED.get(dist)
    if vec is not None:
        return vec(a[:, None, :], b[None, :, :]).astype(float)
    return np.array([row_costs(a[i], b, dist) for i in range(a.shape[0])], dtype=float)


def accumulated_cost(local: np.ndarray) -> np.ndarray:
    """
    D[i, j] = local[i-1, j-1] + min(D[i-1, j], D[i, j-1], D[i-1, j-1]).
    D[0, 0] = 0; every other border cell stays +inf.
    """
    n, m = local.shape
    inf = float("inf")
    L = local.tolist()
    D = [[inf] * (m + 1) for _ in range(n + 1)]
    D[0][0] = 0.0
    for i in range(1, n + 1):
        prev, cur, Li = D[i - 1], D[i], L[i - 1]
        for j in range(1, m + 1):
            cur[j] = Li[j - 1] + min(prev[j], cur[j - 1], prev[j - 1])
    return np.array(D, dtype=float)


def backtrack(D) -> Path:
    """
    Walk back from (n, m) to (1, 1); returns 0-based index pairs in forward order.
    `D` is anything indexable as D[i, j] with a `shape`; cells it does not hold read +inf.
    """
    i, j = D.shape[0] - 1, D.shape[1] - 1
    path: Path = []
    while i > 0 and j > 0:
        path.append((i - 1, j - 1))
        if i == 1 and j == 1:
            break
        if i == 1:
            j -= 1
        elif j == 1:
            i -= 1
        else:
            diag, up, left = D[i - 1, j - 1], D[i - 1, j], D[i, j - 1]
            if diag <= up and diag <= left:
                i, j = i - 1, j - 1
            elif up <= left:
                i -= 1
            else:
                j -= 1
    path.reverse()
    return path


def build_result(D, path: Path, mode: str = "dtw", note: str = "") -> DTWResult:
    n, m = D.shape[0] - 1, D.shape[1] - 1
    distance = float(D[n, m])
    return DTWResult(
        distance=distance,
        path=path,
        normalized_distance=distance / max(n, m),
        mode=mode,
        note=note,
    )


def dtw_arrays(
    a: np.ndarray,
    b: np.ndarray,
    dist: DistanceFn = euclidean_distance,
    mode: str = "dtw",
    note: str = "",
) -> DTWResult:
    """Exact DTW on already-validated (n, D) / (m, D) arrays."""
    D = accumulated_cost(local_cost_matrix(a, b, dist))
    res = build_result(D, backtrack(D), mode=mode, note=note)
    logger.debug("dtw n=%d m=%d distance=%.4f", a.shape[0], b.shape[0], res.distance)
    return res


# ========= Public API =========

def dtw(
    sequence_a: Sequence,
    sequence_b: Sequence,
    dist: DistanceFn = euclidean_distance,
) -> DTWResult:
    """
    Exact DTW between two non-empty sequences of equal-width vectors.

    Accepts lists of vectors, (T, D) arrays, 1-D series or PoseFeature lists.
    Raises InvalidInput on empty input or mismatched vector lengths.
    """
    a = as_matrix(sequence_a, "sequence_a")
    b = as_matrix(sequence_b, "sequence_b")
    check_same_width(a, b)
    return dtw_arrays(a, b, dist)


def offset_from_path(path: Path, sample_rate: float) -> Tuple[float, float]:
    """
    Summarize a warping path as a constant shift.

    Returns (offset_seconds, confidence):
      - offset is the (upper) median of i - j over the path, divided by sample_rate
      - confidence = max(0, 1 - spread / 10), spread = RMS deviation of i - j
        around that median, in samples
    """
    if not path:
        raise InvalidInput("path is empty")
    if not sample_rate > 0:
        raise InvalidInput("sample_rate must be > 0", context={"sample_rate": sample_rate})
    offsets = np.array([i - j for i, j in path], dtype=float)
    median = float(np.sort(offsets)[len(offsets) // 2])
    spread = float(np.sqrt(np.mean((offsets - median) ** 2)))
    confidence = max(0.0, 1.0 - spread / 10.0)
    return median / sample_rate, confidence


__all__ = [
    "DTWResult",
    "DistanceFn",
    "euclidean_distance",
    "manhattan_distance",
    "row_costs",
    "local_cost_matrix",
    "accumulated_cost",
    "backtrack",
    "build_result",
    "dtw_arrays",
    "dtw",
    "offset_from_path",
]
