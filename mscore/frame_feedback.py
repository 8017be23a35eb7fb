# mscore/frame_feedback.py
# Free-text coaching feedback for one synchronized frame pair.
#
# Opaque request/response: two JPEG frames in, AnalysisResult out. Nothing
# here feeds back into alignment. No retries; failures surface to the caller.

from __future__ import annotations

import base64
import json
import os
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from mscore.config import ENV_PREFIX
from mscore.errors import InvalidInput

DEFAULT_MODEL = "claude-sonnet-4-5"
MODEL_ENV = ENV_PREFIX + "LLM_MODEL"

PROMPT = """
Compare these two sports action frames.
The first image is the user's form, and the second image is a professional athlete.

Provide a detailed comparison focusing on:
1. Body mechanics (posture, angles, balance).
2. Timing and positioning.
3. Actionable tips for the user to improve.

Return ONLY a JSON object with keys:
  "comparison":     string, detailed comparison text
  "keyDifferences": array of strings, specific mechanical differences
  "tips":           array of strings, actionable coaching tips
""".strip()


@dataclass
class AnalysisResult:
    comparison: str
    tips: List[str] = field(default_factory=list)
    key_differences: List[str] = field(default_factory=list)


FrameAnalyzer = Callable[[bytes, bytes], AnalysisResult]


def build_prompt() -> str:
    return PROMPT


def _str_list(raw: Any) -> List[str]:
    if not isinstance(raw, list):
        return []
    return [str(x).strip() for x in raw if str(x).strip()]


def parse_analysis(text: str) -> AnalysisResult:
    """
    Parse the model's reply. Tolerates code fences / prose around the JSON
    object; raises InvalidInput if no object with a "comparison" string is found.
    """
    if not text or not text.strip():
        raise InvalidInput("Empty analysis response")
    m = re.search(r"\{.*\}", text, flags=re.S)
    if not m:
        raise InvalidInput("No JSON object in analysis response")
    try:
        obj: Dict[str, Any] = json.loads(m.group(0))
    except json.JSONDecodeError as e:
        raise InvalidInput(f"Malformed analysis JSON: {e}") from e
    comparison = obj.get("comparison")
    if not isinstance(comparison, str):
        raise InvalidInput("Analysis JSON lacks a 'comparison' string")
    return AnalysisResult(
        comparison=comparison.strip(),
        tips=_str_list(obj.get("tips")),
        key_differences=_str_list(obj.get("keyDifferences", obj.get("key_differences"))),
    )


def _image_block(jpeg: bytes) -> Dict[str, Any]:
    return {
        "type": "image",
        "source": {
            "type": "base64",
            "media_type": "image/jpeg",
            "data": base64.b64encode(jpeg).decode("ascii"),
        },
    }


def resolve_model(model: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> str:
    """Explicit model id, else $MSCORE_LLM_MODEL, else DEFAULT_MODEL."""
    if model:
        return model
    env = os.environ if environ is None else environ
    return env.get(MODEL_ENV) or DEFAULT_MODEL


def make_anthropic_analyzer(model: Optional[str] = None, max_tokens: int = 1024) -> FrameAnalyzer:
    """
    Returns a callable(user_jpeg, pro_jpeg) -> AnalysisResult using the anthropic SDK.
    """
    model = resolve_model(model)
    try:
        import anthropic  # type: ignore
    except Exception as e:
        raise RuntimeError(f"Anthropic SDK not available: {e}")

    api_key = os.environ.get("ANTHROPIC_API_KEY")
    if not api_key:
        raise RuntimeError("ANTHROPIC_API_KEY not set")

    client = anthropic.Anthropic(api_key=api_key)

    def _call(user_jpeg: bytes, pro_jpeg: bytes) -> AnalysisResult:
        resp = client.messages.create(
            model=model,
            max_tokens=max_tokens,
            messages=[
                {
                    "role": "user",
                    "content": [
                        _image_block(user_jpeg),
                        _image_block(pro_jpeg),
                        {"type": "text", "text": build_prompt()},
                    ],
                }
            ],
        )
        parts: List[str] = []
        for blk in resp.content:
            if getattr(blk, "type", "") == "text":
                parts.append(getattr(blk, "text", ""))
        return parse_analysis("\n".join(p.strip() for p in parts if p))

    return _call


__all__ = [
    "AnalysisResult",
    "FrameAnalyzer",
    "DEFAULT_MODEL",
    "resolve_model",
    "build_prompt",
    "parse_analysis",
    "make_anthropic_analyzer",
]
