# mscore/config.py
# Centralized sampling / alignment constants + the SamplingConfig bundle.

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Dict, Mapping, Optional

from mscore.errors import InvalidInput

# =========================
# Sampling
# =========================

SAMPLE_RATE: float = 10.0          # samples per second
MIN_VIDEO_DURATION: float = 2.0    # seconds; shorter sources are rejected
MAX_VIDEO_DURATION: float = 30.0   # seconds; longer sources are truncated
MIN_POSES: int = 10                # usable samples required per source
SEEK_TIMEOUT: float = 0.1          # seconds to wait for "position reached"
SETTLE_DELAY: float = 0.05         # seconds after each seek, before extraction

# =========================
# Pose confidence
# =========================

MIN_POSE_SCORE: float = 0.3
MIN_KEYPOINT_SCORE: float = 0.3

# =========================
# Alignment
# =========================

FASTDTW_RADIUS: int = 5
OFFSET_SEARCH_FRACTION: float = 0.8

ENV_PREFIX = "MSCORE_"


@dataclass(frozen=True)
class SamplingConfig:
    sample_rate: float = SAMPLE_RATE
    min_duration: float = MIN_VIDEO_DURATION
    max_duration: float = MAX_VIDEO_DURATION
    min_poses: int = MIN_POSES
    seek_timeout: float = SEEK_TIMEOUT
    settle_delay: float = SETTLE_DELAY

    def validate(self) -> "SamplingConfig":
        if not self.sample_rate > 0:
            raise InvalidInput("sample_rate must be > 0", context={"sample_rate": self.sample_rate})
        if self.max_duration <= 0 or self.min_duration < 0:
            raise InvalidInput(
                "durations must be positive",
                context={"min_duration": self.min_duration, "max_duration": self.max_duration},
            )
        if self.min_poses < 0:
            raise InvalidInput("min_poses must be >= 0", context={"min_poses": self.min_poses})
        if self.seek_timeout < 0 or self.settle_delay < 0:
            raise InvalidInput("timeouts/delays must be >= 0")
        return self

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        base: Optional["SamplingConfig"] = None,
    ) -> "SamplingConfig":
        """
        Override fields from MSCORE_<FIELD> variables, e.g. MSCORE_SAMPLE_RATE=15.
        Unset variables keep the value from `base` (defaults if None).
        """
        env = os.environ if environ is None else environ
        cfg = base or cls()
        updates: Dict[str, object] = {}
        for f in fields(cls):
            raw = env.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw.strip() == "":
                continue
            cast = int if f.type in ("int", int) else float
            try:
                updates[f.name] = cast(raw)
            except ValueError:
                raise InvalidInput(
                    f"Bad value for {ENV_PREFIX}{f.name.upper()}: {raw!r}"
                ) from None
        return replace(cfg, **updates).validate()


DEFAULT_CONFIG = SamplingConfig()

__all__ = [
    "SAMPLE_RATE",
    "MIN_VIDEO_DURATION",
    "MAX_VIDEO_DURATION",
    "MIN_POSES",
    "SEEK_TIMEOUT",
    "SETTLE_DELAY",
    "MIN_POSE_SCORE",
    "MIN_KEYPOINT_SCORE",
    "FASTDTW_RADIUS",
    "OFFSET_SEARCH_FRACTION",
    "SamplingConfig",
    "DEFAULT_CONFIG",
]
