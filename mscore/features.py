#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
CONTRACT (FEATURE VECTOR)
=========================
Every sampled instant is reduced to one PoseFeature before alignment:

  FEATURE_KEYS = [
      "left_elbow", "right_elbow",          # joint angles, degrees in [0, 180]
      "left_knee", "right_knee",
      "left_shoulder", "right_shoulder",
      "left_hip", "right_hip",
      "left_wrist", "right_wrist",          # wrist y position, pixels (+down)
  ]

Guarantees:
  - feature_to_vector() always returns the keys in FEATURE_KEYS order.
  - extract_features() returns None (never a partial vector) when any joint
    the angles depend on is missing or below the keypoint score threshold.
  - as_matrix() never aliases caller data; vectors compared against each
    other must share one width, otherwise InvalidInput.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Union

import numpy as np

from mscore.config import MIN_KEYPOINT_SCORE
from mscore.errors import InvalidInput
from mscore.joints import FEATURE_JOINTS

FEATURE_KEYS = [
    "left_elbow",
    "right_elbow",
    "left_knee",
    "right_knee",
    "left_shoulder",
    "right_shoulder",
    "left_hip",
    "right_hip",
    "left_wrist",
    "right_wrist",
]

# angle name -> (a, vertex, c)
ANGLE_TRIPLETS: Dict[str, tuple] = {
    "left_elbow": ("left_shoulder", "left_elbow", "left_wrist"),
    "right_elbow": ("right_shoulder", "right_elbow", "right_wrist"),
    "left_knee": ("left_hip", "left_knee", "left_ankle"),
    "right_knee": ("right_hip", "right_knee", "right_ankle"),
    "left_shoulder": ("left_elbow", "left_shoulder", "left_hip"),
    "right_shoulder": ("right_elbow", "right_shoulder", "right_hip"),
    "left_hip": ("left_shoulder", "left_hip", "left_knee"),
    "right_hip": ("right_shoulder", "right_hip", "right_knee"),
}


# ========= Pose types =========

@dataclass(frozen=True)
class Keypoint:
    x: float
    y: float
    score: float
    name: str = ""


@dataclass(frozen=True)
class Pose:
    keypoints: List[Keypoint] = field(default_factory=list)
    score: float = 0.0

    def by_name(self) -> Dict[str, Keypoint]:
        return {kp.name: kp for kp in self.keypoints if kp.name}


@dataclass(frozen=True)
class PoseFeature:
    left_elbow: float
    right_elbow: float
    left_knee: float
    right_knee: float
    left_shoulder: float
    right_shoulder: float
    left_hip: float
    right_hip: float
    left_wrist: float
    right_wrist: float
    timestamp: float = 0.0


# ========= Geometry =========

def calculate_angle(p1: Keypoint, p2: Keypoint, p3: Keypoint) -> float:
    """Angle at p2 (degrees, 0..180) between p2->p1 and p2->p3."""
    radians = math.atan2(p3.y - p2.y, p3.x - p2.x) - math.atan2(p1.y - p2.y, p1.x - p2.x)
    angle = abs(math.degrees(radians))
    if angle > 180.0:
        angle = 360.0 - angle
    return angle


def extract_features(
    pose: Optional[Pose],
    timestamp: float,
    min_keypoint_score: float = MIN_KEYPOINT_SCORE,
) -> Optional[PoseFeature]:
    if pose is None:
        return None
    kps = pose.by_name()
    for name in FEATURE_JOINTS:
        kp = kps.get(name)
        if kp is None or not kp.score > min_keypoint_score:
            return None

    angles = {
        key: calculate_angle(kps[a], kps[b], kps[c])
        for key, (a, b, c) in ANGLE_TRIPLETS.items()
    }
    return PoseFeature(
        left_wrist=float(kps["left_wrist"].y),
        right_wrist=float(kps["right_wrist"].y),
        timestamp=float(timestamp),
        **angles,
    )


# ========= Vectors =========

def feature_to_vector(feature: PoseFeature) -> np.ndarray:
    return np.array([getattr(feature, k) for k in FEATURE_KEYS], dtype=float)


VectorLike = Union[PoseFeature, Sequence[float], np.ndarray, float]


def _row(item: VectorLike) -> np.ndarray:
    if isinstance(item, PoseFeature):
        return feature_to_vector(item)
    return np.array(item, dtype=float).ravel()


def as_matrix(sequence: Iterable[VectorLike], name: str = "sequence") -> np.ndarray:
    """
    Convert a sequence of vectors (or PoseFeatures) to a (T, D) float array.
    Scalars become width-1 vectors, so 1-D series are accepted as well.
    """
    if isinstance(sequence, np.ndarray) and sequence.ndim == 2:
        rows = [r for r in np.array(sequence, dtype=float)]
    else:
        rows = [_row(r) for r in sequence]
    if not rows:
        raise InvalidInput(f"{name} is empty")
    width = rows[0].shape[0]
    for idx, r in enumerate(rows):
        if r.shape[0] != width:
            raise InvalidInput(
                f"{name} has vectors of different lengths",
                context={"index": idx, "expected": width, "got": r.shape[0]},
            )
    return np.vstack(rows)


def check_same_width(a: np.ndarray, b: np.ndarray) -> None:
    if a.shape[1] != b.shape[1]:
        raise InvalidInput(
            "Vector lengths differ between sequences",
            context={"a": a.shape[1], "b": b.shape[1]},
        )


__all__ = [
    "FEATURE_KEYS",
    "ANGLE_TRIPLETS",
    "Keypoint",
    "Pose",
    "PoseFeature",
    "calculate_angle",
    "extract_features",
    "feature_to_vector",
    "as_matrix",
    "check_same_width",
]
