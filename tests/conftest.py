import sys, os; sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

# --- Deterministic fakes for the sampling pipeline (no cv2 / mediapipe) ---
import asyncio
import math
from typing import Callable, List, Optional, Set

import numpy as np
import pytest

from mscore.features import Keypoint, Pose
from mscore.joints import JOINT_NAMES


def skeleton_at(t: float, score: float = 0.9) -> Pose:
    """
    Synthetic 17-keypoint pose whose limbs move with incommensurate
    frequencies, so no two instants in a few seconds look alike.
    """
    arm = 1.3 * math.sin(1.7 * t) + 0.6 * math.sin(0.43 * t)
    leg = 0.5 * math.sin(2.3 * t + 0.4) + 0.2 * math.sin(0.77 * t)
    elbow_y = 130.0 + 6.0 * math.sin(0.9 * t + 1.0)
    pos = {
        "nose": (100.0, 70.0),
        "left_eye": (96.0, 66.0),
        "right_eye": (104.0, 66.0),
        "left_ear": (92.0, 68.0),
        "right_ear": (108.0, 68.0),
        "left_shoulder": (90.0, 100.0),
        "right_shoulder": (110.0, 100.0),
        "left_elbow": (80.0, elbow_y),
        "right_elbow": (120.0, elbow_y),
        "left_wrist": (80.0 - 20.0 * math.cos(arm), elbow_y + 20.0 * math.sin(arm)),
        "right_wrist": (120.0 + 20.0 * math.cos(arm), elbow_y + 20.0 * math.sin(arm)),
        "left_hip": (95.0, 160.0),
        "right_hip": (105.0, 160.0),
        "left_knee": (95.0 - 40.0 * math.sin(leg), 160.0 + 40.0 * math.cos(leg)),
        "right_knee": (105.0 + 40.0 * math.sin(leg), 160.0 + 40.0 * math.cos(leg)),
        "left_ankle": (92.0, 240.0),
        "right_ankle": (108.0, 240.0),
    }
    kps = [Keypoint(x=pos[n][0], y=pos[n][1], score=score, name=n) for n in JOINT_NAMES]
    return Pose(keypoints=kps, score=score)


class FakeVideoSource:
    """VideoSource with a single position cursor; seeks at `hang_at` never complete."""

    def __init__(self, duration: float, name: str = "fake", start: float = 0.0,
                 hang_at: Optional[Set[float]] = None):
        self.name = name
        self._duration = float(duration)
        self._time = float(start)
        self.hang_at = {round(t, 6) for t in (hang_at or set())}
        self.seeks: List[float] = []
        self.paused = False

    @property
    def duration(self) -> float:
        return self._duration

    @property
    def current_time(self) -> float:
        return self._time

    async def seek(self, t: float) -> None:
        self.seeks.append(t)
        if round(t, 6) in self.hang_at:
            await asyncio.sleep(10)
        await asyncio.sleep(0)
        self._time = t

    def pause(self) -> None:
        self.paused = True


class FakePoseDetector:
    """PoseDetector driven by a function of the source position."""

    def __init__(self, pose_at: Callable[[str, float], Optional[Pose]]):
        self.pose_at = pose_at
        self.initialized = 0
        self.disposed = 0
        self.calls = 0

    async def initialize(self) -> None:
        self.initialized += 1

    async def detect(self, source) -> Optional[Pose]:
        self.calls += 1
        return self.pose_at(source.name, source.current_time)

    def dispose(self) -> None:
        self.disposed += 1


@pytest.fixture
def rng():
    return np.random.RandomState(1234)


@pytest.fixture
def make_source():
    return FakeVideoSource


@pytest.fixture
def make_detector():
    return FakePoseDetector


@pytest.fixture
def fast_config():
    from mscore.config import SamplingConfig
    return SamplingConfig(settle_delay=0.0, seek_timeout=0.05)
