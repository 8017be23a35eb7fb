# mscore/video.py
# OpenCV video source + MediaPipe pose detector for the sampling pipeline.
#
# Both are optional: `import mscore` works without cv2/mediapipe, and the
# classes raise ImportError with an install hint when constructed.

from __future__ import annotations

import asyncio
import logging
import os
import threading
from typing import List, Optional

import numpy as np

from mscore.features import Keypoint, Pose
from mscore.joints import MEDIAPIPE_TO_NAME

try:
    import cv2
except ImportError:
    cv2 = None

try:
    import mediapipe as mp
except ImportError:
    mp = None

logger = logging.getLogger(__name__)


def _require(*names: str) -> None:
    mods = {"opencv-python": cv2, "mediapipe": mp}
    missing = [n for n in names if mods[n] is None]
    if missing:
        raise ImportError(
            f"Video dependencies not installed: {', '.join(missing)}. "
            'Install them with: pip install -e ".[video]"'
        )


class OpenCVVideoSource:
    """
    File-backed VideoSource. `seek` decodes the frame at t (in a worker thread)
    and keeps it as `frame_rgb` for the detector.

    Seeks are serialized: a decode abandoned by a caller's timeout keeps
    running, and the next seek waits for it before touching the capture.
    """

    def __init__(self, path: str, capture=None):
        _require("opencv-python")
        self.path = path
        self.name = os.path.basename(path)
        self._cap = cv2.VideoCapture(path) if capture is None else capture
        if not self._cap.isOpened():
            raise RuntimeError(f"Cannot open video: {path}")
        self.fps = float(self._cap.get(cv2.CAP_PROP_FPS) or 30.0)
        frames = float(self._cap.get(cv2.CAP_PROP_FRAME_COUNT) or 0.0)
        self._duration = frames / self.fps if self.fps > 0 else 0.0
        self.width = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        self.height = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        self._time = 0.0
        self.frame_rgb: Optional[np.ndarray] = None
        self._io_lock = threading.Lock()
        self._pending: Optional[asyncio.Future] = None

    @property
    def duration(self) -> float:
        return self._duration

    @property
    def current_time(self) -> float:
        return self._time

    def _read_at(self, t: float) -> None:
        with self._io_lock:
            self._cap.set(cv2.CAP_PROP_POS_MSEC, max(0.0, t) * 1000.0)
            ok, frame = self._cap.read()
            if ok:
                self.frame_rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
                self._time = float(t)
            else:
                # no stale frame may be stamped with the new time
                self.frame_rgb = None
                logger.debug("%s: no frame at %.3fs", self.name, t)

    async def _drain(self) -> None:
        pending = self._pending
        if pending is None or pending.done():
            return
        await asyncio.wait([pending])
        if not pending.cancelled() and pending.exception() is not None:
            logger.warning("%s: abandoned decode failed: %s", self.name, pending.exception())

    async def seek(self, t: float) -> None:
        await self._drain()
        self._pending = asyncio.ensure_future(asyncio.to_thread(self._read_at, t))
        await asyncio.shield(self._pending)

    def pause(self) -> None:
        # a file capture has no playback clock
        pass

    async def aclose(self) -> None:
        await self._drain()
        self.close()

    def close(self) -> None:
        with self._io_lock:
            self._cap.release()

    def __enter__(self) -> "OpenCVVideoSource":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class MediaPipePoseDetector:
    """PoseDetector backed by mediapipe.solutions.pose (BlazePose)."""

    def __init__(self, model_complexity: int = 1, min_detection_confidence: float = 0.5):
        _require("mediapipe")
        self.model_complexity = int(model_complexity)
        self.min_detection_confidence = float(min_detection_confidence)
        self._pose = None

    async def initialize(self) -> None:
        if self._pose is not None:
            return
        self._pose = mp.solutions.pose.Pose(
            static_image_mode=True,
            model_complexity=self.model_complexity,
            enable_segmentation=False,
            min_detection_confidence=self.min_detection_confidence,
        )
        logger.info("MediaPipe pose model loaded (complexity=%d)", self.model_complexity)

    def _detect_frame(self, frame_rgb: np.ndarray) -> Optional[Pose]:
        res = self._pose.process(frame_rgb)
        if not res.pose_landmarks:
            return None
        h, w = frame_rgb.shape[:2]
        lm = res.pose_landmarks.landmark
        kps: List[Keypoint] = [
            Keypoint(
                x=float(lm[idx].x * w),
                y=float(lm[idx].y * h),
                score=float(lm[idx].visibility),
                name=name,
            )
            for idx, name in MEDIAPIPE_TO_NAME.items()
        ]
        score = float(np.mean([k.score for k in kps])) if kps else 0.0
        return Pose(keypoints=kps, score=score)

    async def detect(self, source) -> Optional[Pose]:
        if self._pose is None:
            await self.initialize()
        frame = getattr(source, "frame_rgb", None)
        if frame is None:
            return None
        return await asyncio.to_thread(self._detect_frame, frame)

    def dispose(self) -> None:
        if self._pose is not None:
            self._pose.close()
            self._pose = None


__all__ = ["OpenCVVideoSource", "MediaPipePoseDetector"]
