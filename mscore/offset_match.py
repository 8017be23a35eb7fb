# mscore/offset_match.py
#
# Offset-maximization matcher: one global integer shift between two clips.
#
# For every candidate shift k the score is the mean cosine similarity of
# pro[i] against user[i + k] over all valid i. The best k re-times playback;
# it is coarser than DTW but stable and cheap.
#
# Sign convention: offset_frames = k means user[i + k] matches pro[i], i.e. the
# motion happens k / sample_rate seconds later in the user clip.

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from mscore.config import OFFSET_SEARCH_FRACTION, SAMPLE_RATE
from mscore.errors import InsufficientData, InvalidInput
from mscore.features import as_matrix, check_same_width

logger = logging.getLogger(__name__)

_TIE_TOL = 1e-9


@dataclass
class OffsetResult:
    offset_frames: int
    offset_seconds: float
    confidence: float
    match_score: float
    comparisons: int = 0


# ========= Similarity =========

def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Cosine similarity in [-1, 1]; 0 if either vector has zero norm."""
    a = np.asarray(a, float)
    b = np.asarray(b, float)
    na = float(np.linalg.norm(a))
    nb = float(np.linalg.norm(b))
    if na == 0.0 or nb == 0.0:
        return 0.0
    return float(np.dot(a, b) / (na * nb))


def _unit_rows(x: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(x, axis=1, keepdims=True)
    out = np.zeros_like(x, dtype=float)
    nz = norms[:, 0] > 0.0
    out[nz] = x[nz] / norms[nz]
    return out


def cosine_similarity_matrix(pro: np.ndarray, user: np.ndarray) -> np.ndarray:
    """S[i, u] = cosine(pro[i], user[u]); zero-norm rows give 0."""
    return _unit_rows(pro) @ _unit_rows(user).T


# ========= Public API =========

def find_best_offset(
    user_sequence: Sequence,
    pro_sequence: Sequence,
    sample_rate: float = SAMPLE_RATE,
    search_fraction: float = OFFSET_SEARCH_FRACTION,
) -> OffsetResult:
    """
    Search k in [-floor(f * len(pro)), floor(f * len(user))] for the shift with
    the highest mean cosine similarity. Ties go to the smaller |k|, then to the
    first k in ascending order.

    Raises InsufficientData if either sequence is empty, InvalidInput on
    mismatched widths or a non-positive sample rate.
    """
    if len(user_sequence) == 0 or len(pro_sequence) == 0:
        raise InsufficientData(
            "Both sequences need at least one feature vector",
            context={"user": len(user_sequence), "pro": len(pro_sequence)},
        )
    if not sample_rate > 0:
        raise InvalidInput("sample_rate must be > 0", context={"sample_rate": sample_rate})

    user = as_matrix(user_sequence, "user_sequence")
    pro = as_matrix(pro_sequence, "pro_sequence")
    check_same_width(user, pro)

    n_user, n_pro = user.shape[0], pro.shape[0]
    min_offset = -int(math.floor(search_fraction * n_pro))
    max_offset = int(math.floor(search_fraction * n_user))

    S = cosine_similarity_matrix(pro, user)

    best_k = 0
    best_score = -math.inf
    best_count = 0
    for k in range(min_offset, max_offset + 1):
        diag = np.diagonal(S, offset=k)  # S[i, i + k]
        if diag.size == 0:
            continue
        score = float(diag.mean())
        if score > best_score + _TIE_TOL or (
            abs(score - best_score) <= _TIE_TOL and abs(k) < abs(best_k)
        ):
            best_k, best_score, best_count = k, score, int(diag.size)

    if best_count == 0:
        # only reachable with a search fraction that excludes every overlap
        raise InsufficientData(
            "No offset in the search range overlaps both sequences",
            context={"min_offset": min_offset, "max_offset": max_offset},
        )

    confidence = min(1.0, (best_score + 1.0) / 2.0)
    logger.info(
        "best offset %+d frames (%.3fs) score=%.4f confidence=%.3f over %d comparisons",
        best_k, best_k / sample_rate, best_score, confidence, best_count,
    )
    return OffsetResult(
        offset_frames=best_k,
        offset_seconds=best_k / sample_rate,
        confidence=confidence,
        match_score=best_score,
        comparisons=best_count,
    )


__all__ = [
    "OffsetResult",
    "cosine_similarity",
    "cosine_similarity_matrix",
    "find_best_offset",
]
