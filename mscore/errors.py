# mscore/errors.py
# Exception taxonomy for alignment and sampling.
#
# InvalidInput is always a caller bug. InsufficientData / InsufficientPoses /
# TooShort are recoverable by re-sampling or asking for a better recording.
# ExtractionTimeout is non-fatal inside the sampling loop.

from __future__ import annotations

from typing import Any, Dict, Optional


class MotionSyncError(Exception):
    """Base class for every error raised by mscore."""

    def __init__(self, message: str, *args, context: Optional[Dict[str, Any]] = None):
        super().__init__(message, *args)
        self.message = message
        self.context: Dict[str, Any] = dict(context or {})

    def __str__(self) -> str:
        base = super().__str__()
        if not self.context:
            return base
        details = ", ".join(f"{k}: {v}" for k, v in self.context.items())
        return f"{base} ({details})"


class InvalidInput(MotionSyncError, ValueError):
    """Malformed or mismatched vectors / parameters."""


class InsufficientData(MotionSyncError):
    """Too little signal to produce a result (e.g. an empty sequence)."""


class InsufficientPoses(InsufficientData):
    """Sampling produced fewer usable poses than required."""


class TooShort(MotionSyncError):
    """Source duration is below the usable floor."""


class ExtractionTimeout(MotionSyncError, TimeoutError):
    """A source did not reach the requested position in time."""


class SamplingCancelled(MotionSyncError):
    """Sampling was cancelled between two sample instants."""


__all__ = [
    "MotionSyncError",
    "InvalidInput",
    "InsufficientData",
    "InsufficientPoses",
    "TooShort",
    "ExtractionTimeout",
    "SamplingCancelled",
]
