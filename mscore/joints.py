from __future__ import annotations

"""
Centralized keypoint names and detector landmark indices.

The feature contract is keyed by joint *name* (the 17 COCO / MoveNet joints
below), so a detector with a different landmark layout only needs a mapping
into these names. Downstream code should import from here instead of
hardcoding numeric indices.
"""

# Shared joint names, in COCO-17 order
JOINT_NAMES = [
    "nose",
    "left_eye", "right_eye",
    "left_ear", "right_ear",
    "left_shoulder", "right_shoulder",
    "left_elbow", "right_elbow",
    "left_wrist", "right_wrist",
    "left_hip", "right_hip",
    "left_knee", "right_knee",
    "left_ankle", "right_ankle",
]

# MediaPipe BlazePose-33 landmark indices (only those we map)
MP_NOSE = 0
MP_LEFT_EYE = 2
MP_RIGHT_EYE = 5
MP_LEFT_EAR = 7
MP_RIGHT_EAR = 8
MP_LEFT_SHOULDER = 11
MP_RIGHT_SHOULDER = 12
MP_LEFT_ELBOW = 13
MP_RIGHT_ELBOW = 14
MP_LEFT_WRIST = 15
MP_RIGHT_WRIST = 16
MP_LEFT_HIP = 23
MP_RIGHT_HIP = 24
MP_LEFT_KNEE = 25
MP_RIGHT_KNEE = 26
MP_LEFT_ANKLE = 27
MP_RIGHT_ANKLE = 28

MEDIAPIPE_TO_NAME = {
    MP_NOSE: "nose",
    MP_LEFT_EYE: "left_eye",
    MP_RIGHT_EYE: "right_eye",
    MP_LEFT_EAR: "left_ear",
    MP_RIGHT_EAR: "right_ear",
    MP_LEFT_SHOULDER: "left_shoulder",
    MP_RIGHT_SHOULDER: "right_shoulder",
    MP_LEFT_ELBOW: "left_elbow",
    MP_RIGHT_ELBOW: "right_elbow",
    MP_LEFT_WRIST: "left_wrist",
    MP_RIGHT_WRIST: "right_wrist",
    MP_LEFT_HIP: "left_hip",
    MP_RIGHT_HIP: "right_hip",
    MP_LEFT_KNEE: "left_knee",
    MP_RIGHT_KNEE: "right_knee",
    MP_LEFT_ANKLE: "left_ankle",
    MP_RIGHT_ANKLE: "right_ankle",
}

# Joints every feature vector depends on (angle triplets + wrists)
FEATURE_JOINTS = (
    "left_shoulder", "right_shoulder",
    "left_elbow", "right_elbow",
    "left_wrist", "right_wrist",
    "left_hip", "right_hip",
    "left_knee", "right_knee",
    "left_ankle", "right_ankle",
)

__all__ = [
    "JOINT_NAMES",
    "MP_NOSE",
    "MP_LEFT_EYE", "MP_RIGHT_EYE",
    "MP_LEFT_EAR", "MP_RIGHT_EAR",
    "MP_LEFT_SHOULDER", "MP_RIGHT_SHOULDER",
    "MP_LEFT_ELBOW", "MP_RIGHT_ELBOW",
    "MP_LEFT_WRIST", "MP_RIGHT_WRIST",
    "MP_LEFT_HIP", "MP_RIGHT_HIP",
    "MP_LEFT_KNEE", "MP_RIGHT_KNEE",
    "MP_LEFT_ANKLE", "MP_RIGHT_ANKLE",
    "MEDIAPIPE_TO_NAME",
    "FEATURE_JOINTS",
]
