#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
CONTRACT (SAMPLING PIPELINE)
============================
Drives feature extraction over a video-like source at a fixed rate and feeds
the alignment engine.

Collaborators (injected, never global):
  - VideoSource:      duration / current_time / async seek(t) / pause()
  - PoseDetector:     async initialize() / async detect(source) / dispose()
  - FeatureExtractor: async initialize() / async extract(source, t)

Guarantees:
  - One sample instant completes (seek, settle delay, extraction) before the
    next is requested; the source has a single position cursor.
  - A seek that does not finish within seek_timeout is logged and sampling
    continues at whatever position the source reports.
  - Instants without a usable pose are skipped, never padded.
  - The source's playback position is restored, also when sampling fails.
  - Cancellation is only honoured between instants.
  - Progress is publish-only; a missing stream changes nothing.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
from dataclasses import dataclass, field
from typing import AsyncIterator, List, Optional, Protocol, runtime_checkable

from mscore.config import (
    DEFAULT_CONFIG,
    FASTDTW_RADIUS,
    MIN_KEYPOINT_SCORE,
    MIN_POSE_SCORE,
    SamplingConfig,
)
from mscore.dtw import DTWResult
from mscore.errors import (
    ExtractionTimeout,
    InsufficientPoses,
    SamplingCancelled,
    TooShort,
)
from mscore.fastdtw import fast_dtw
from mscore.features import Pose, PoseFeature, extract_features
from mscore.offset_match import OffsetResult, find_best_offset
from mscore.progress import ProgressStream, Stage, emit

logger = logging.getLogger(__name__)


# ========= Collaborator interfaces =========

@runtime_checkable
class VideoSource(Protocol):
    name: str

    @property
    def duration(self) -> float: ...

    @property
    def current_time(self) -> float: ...

    async def seek(self, t: float) -> None: ...

    def pause(self) -> None: ...


@runtime_checkable
class PoseDetector(Protocol):
    async def initialize(self) -> None: ...

    async def detect(self, source: VideoSource) -> Optional[Pose]: ...

    def dispose(self) -> None: ...


@runtime_checkable
class FeatureExtractor(Protocol):
    async def initialize(self) -> None: ...

    async def extract(self, source: VideoSource, timestamp: float) -> Optional[PoseFeature]: ...


class PoseFeatureExtractor:
    """Detector + confidence gates + mscore.features.extract_features."""

    def __init__(
        self,
        detector: PoseDetector,
        min_pose_score: float = MIN_POSE_SCORE,
        min_keypoint_score: float = MIN_KEYPOINT_SCORE,
    ):
        self.detector = detector
        self.min_pose_score = float(min_pose_score)
        self.min_keypoint_score = float(min_keypoint_score)

    async def initialize(self) -> None:
        await self.detector.initialize()

    async def extract(self, source: VideoSource, timestamp: float) -> Optional[PoseFeature]:
        pose = await self.detector.detect(source)
        if pose is None or not pose.score > self.min_pose_score:
            return None
        return extract_features(pose, timestamp, self.min_keypoint_score)


@contextlib.asynccontextmanager
async def detector_session(detector: PoseDetector) -> AsyncIterator[PoseDetector]:
    """Initialize a detector for the duration of a block and dispose it afterwards."""
    await detector.initialize()
    try:
        yield detector
    finally:
        detector.dispose()


# ========= Sampling =========

async def _seek(source: VideoSource, t: float, timeout: float) -> bool:
    """True if the source confirmed the position in time."""
    try:
        await asyncio.wait_for(source.seek(t), timeout=timeout)
        return True
    except (asyncio.TimeoutError, ExtractionTimeout):
        logger.warning(
            "%s: seek to %.3fs not confirmed within %.0fms; continuing at %.3fs",
            getattr(source, "name", "source"), t, timeout * 1000.0, source.current_time,
        )
        return False


async def sample_video(
    source: VideoSource,
    extractor: FeatureExtractor,
    config: Optional[SamplingConfig] = None,
    progress: Optional[ProgressStream] = None,
    cancel: Optional[asyncio.Event] = None,
    progress_base: float = 0.0,
    progress_span: float = 100.0,
) -> List[PoseFeature]:
    """
    Sample `source` every 1 / sample_rate seconds over min(duration, max_duration).

    Raises TooShort, InsufficientPoses, SamplingCancelled or InvalidInput (bad config).
    `progress_base` / `progress_span` map this run's 0..100% into a caller's range.
    """
    cfg = (config or DEFAULT_CONFIG).validate()
    name = getattr(source, "name", "source")

    if source.duration < cfg.min_duration:
        raise TooShort(
            f"Video too short. Minimum {cfg.min_duration:g}s required.",
            context={"source": name, "duration": round(float(source.duration), 3)},
        )

    emit(progress, Stage.INITIALIZING, progress_base, "Loading pose detection model...")
    await extractor.initialize()
    emit(progress, Stage.SAMPLING, progress_base, "Sampling video frames...")

    duration = min(float(source.duration), cfg.max_duration)
    total = int(math.floor(duration * cfg.sample_rate))
    interval = 1.0 / cfg.sample_rate
    logger.info("%s: sampling %d instants over %.2fs at %g Hz", name, total, duration, cfg.sample_rate)

    features: List[PoseFeature] = []
    original_time = source.current_time
    source.pause()
    try:
        for i in range(total):
            if cancel is not None and cancel.is_set():
                raise SamplingCancelled(
                    "Sampling cancelled", context={"source": name, "sampled": i, "total": total}
                )
            timestamp = i * interval
            if not await _seek(source, timestamp, cfg.seek_timeout):
                timestamp = float(source.current_time)
            if cfg.settle_delay > 0:
                await asyncio.sleep(cfg.settle_delay)

            feature = await extractor.extract(source, timestamp)
            if feature is not None:
                features.append(feature)
            else:
                logger.debug("%s: no usable pose at %.3fs", name, timestamp)

            emit(
                progress,
                Stage.SAMPLING,
                progress_base + progress_span * (i + 1) / total,
                f"Analyzed frame {i + 1}/{total}",
            )
    finally:
        await _seek(source, original_time, cfg.seek_timeout)

    if len(features) < cfg.min_poses:
        raise InsufficientPoses(
            "Could not detect enough poses. Please ensure the athlete is clearly visible.",
            context={"source": name, "usable": len(features), "required": cfg.min_poses},
        )
    logger.info("%s: %d/%d usable samples", name, len(features), total)
    return features


# ========= Orchestration =========

@dataclass
class SyncResult:
    offset: float  # seconds; see mscore.offset_match for the sign convention
    confidence: float
    match_quality: float
    user_features: List[PoseFeature] = field(default_factory=list)
    pro_features: List[PoseFeature] = field(default_factory=list)
    offset_result: Optional[OffsetResult] = None
    alignment: Optional[DTWResult] = None


async def perform_auto_sync(
    user_source: VideoSource,
    pro_source: VideoSource,
    extractor: FeatureExtractor,
    config: Optional[SamplingConfig] = None,
    progress: Optional[ProgressStream] = None,
    cancel: Optional[asyncio.Event] = None,
    with_dtw: bool = False,
    radius: int = FASTDTW_RADIUS,
) -> SyncResult:
    """
    Sample both clips (user first), then find the best constant offset and,
    with `with_dtw`, the FastDTW warping path between the two sequences.
    The progress stream is closed when this returns or raises.
    """
    cfg = (config or DEFAULT_CONFIG).validate()
    try:
        emit(progress, Stage.ANALYZING, 0, "Analyzing user video...")
        user_features = await sample_video(
            user_source, extractor, cfg, progress, cancel, progress_base=0.0, progress_span=50.0
        )
        emit(progress, Stage.ANALYZING, 50, "Analyzing professional video...")
        pro_features = await sample_video(
            pro_source, extractor, cfg, progress, cancel, progress_base=50.0, progress_span=50.0
        )

        emit(progress, Stage.MATCHING, 90, "Finding best sync point...")
        best = find_best_offset(user_features, pro_features, sample_rate=cfg.sample_rate)

        alignment = None
        if with_dtw:
            alignment = fast_dtw(user_features, pro_features, radius=radius)
            logger.info(
                "dtw alignment mode=%s normalized_distance=%.4f",
                alignment.mode, alignment.normalized_distance,
            )

        emit(progress, Stage.MATCHING, 100, "Sync complete")
        return SyncResult(
            offset=best.offset_seconds,
            confidence=best.confidence,
            match_quality=max(0.0, (best.match_score + 1.0) / 2.0),
            user_features=user_features,
            pro_features=pro_features,
            offset_result=best,
            alignment=alignment,
        )
    finally:
        if progress is not None:
            progress.close()


__all__ = [
    "VideoSource",
    "PoseDetector",
    "FeatureExtractor",
    "PoseFeatureExtractor",
    "detector_session",
    "sample_video",
    "SyncResult",
    "perform_auto_sync",
]
