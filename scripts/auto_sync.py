#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
auto_sync.py

Find the playback offset between a user clip and a reference clip.

Usage:
  python -m scripts.auto_sync --user videos/me.mp4 --pro videos/pro.mp4
  python -m scripts.auto_sync --user a.mp4 --pro b.mp4 --dtw --radius 5 --verbose

Output: one JSON object on stdout:
  offset_s      seconds; seek the reference to (user_time - offset_s)
  confidence    0..1
  match_quality 0..1
  dtw           optional {mode, distance, normalized_distance, path_len, path_offset_s}

Needs the video extra: pip install -e ".[video]"
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Any, Dict

# Ensure repo root on path
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from mscore import make_pose_detector, open_video  # noqa: E402
from mscore.config import SamplingConfig  # noqa: E402
from mscore.dtw import offset_from_path  # noqa: E402
from mscore.errors import MotionSyncError  # noqa: E402
from mscore.progress import ProgressStream  # noqa: E402
from mscore.sampling import PoseFeatureExtractor, SyncResult, detector_session, perform_auto_sync  # noqa: E402


def _summary(res: SyncResult, sample_rate: float) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "offset_s": round(res.offset, 3),
        "confidence": round(res.confidence, 4),
        "match_quality": round(res.match_quality, 4),
        "user_samples": len(res.user_features),
        "pro_samples": len(res.pro_features),
    }
    if res.alignment is not None:
        path_offset, path_conf = offset_from_path(res.alignment.path, sample_rate)
        out["dtw"] = {
            "mode": res.alignment.mode,
            "distance": round(res.alignment.distance, 4),
            "normalized_distance": round(res.alignment.normalized_distance, 4),
            "path_len": len(res.alignment.path),
            "path_offset_s": round(path_offset, 3),
            "path_confidence": round(path_conf, 4),
        }
    return out


async def _run(args: argparse.Namespace) -> Dict[str, Any]:
    cfg = SamplingConfig.from_env(
        base=SamplingConfig(sample_rate=args.sample_rate, max_duration=args.max_duration)
    )
    stream = ProgressStream()
    user = open_video(args.user)
    pro = open_video(args.pro)
    try:
        async with detector_session(make_pose_detector(model_complexity=args.model_complexity)) as det:
            task = asyncio.create_task(
                perform_auto_sync(
                    user, pro, PoseFeatureExtractor(det), cfg,
                    progress=stream, with_dtw=args.dtw, radius=args.radius,
                )
            )
            async for ev in stream:
                if not args.quiet:
                    print(f"[{ev.stage.value:12s}] {ev.progress:5.1f}%  {ev.message}", file=sys.stderr)
            res = await task
    finally:
        await user.aclose()
        await pro.aclose()
    return _summary(res, cfg.sample_rate)


def main() -> int:
    ap = argparse.ArgumentParser(description="Auto-sync a user clip against a reference clip.")
    ap.add_argument("--user", required=True, help="User video path")
    ap.add_argument("--pro", required=True, help="Reference video path")
    ap.add_argument("--sample-rate", type=float, default=10.0, help="Samples per second")
    ap.add_argument("--max-duration", type=float, default=30.0, help="Seconds analysed per clip")
    ap.add_argument("--model-complexity", type=int, default=1, help="MediaPipe model complexity (0-2)")
    ap.add_argument("--dtw", action="store_true", help="Also compute a FastDTW warping path")
    ap.add_argument("--radius", type=int, default=5, help="FastDTW radius")
    ap.add_argument("--quiet", action="store_true", help="No progress lines")
    ap.add_argument("--verbose", action="store_true", help="Debug logging")
    args = ap.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        out = asyncio.run(_run(args))
    except MotionSyncError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    print(json.dumps(out, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
