"""
Prompt Builder

Renders an evaluation request and a list of metric names into a single
instruction text for the text-generation backend.

Prompt composition (sections separated by a blank line):
- Header: evaluator persona and the 1-10 scoring scale
- Video details: labeled lines in a fixed order (absent fields are rendered
  with a placeholder, never omitted)
- Numbered list of the requested metrics
- Output instruction: the exact JSON shape expected back
"""

import re
from typing import Sequence

from .domain.constants import (
    DEFAULT_TITLE,
    MAX_COMMON_IMPROVEMENTS,
    MISSING_FIELD_PLACEHOLDER,
    SCORE_MAX,
    SCORE_MIN,
)
from .domain.entities import EvaluationRequest


PROMPT_HEADER = (
    "You are an expert reviewer for YouTube educational videos. "
    "Evaluate the following video and provide for each requested metric "
    f"a numeric score from {SCORE_MIN} (poor) to {SCORE_MAX} (excellent) "
    "and a concise actionable feedback section with suggestions."
)

METRICS_HEADING = "Metrics to evaluate:"

OUTPUT_INSTRUCTION = (
    "Return a JSON object with a field \"results\" holding, for each metric, "
    f'{{ "metric": "<name>", "score": <{SCORE_MIN}-{SCORE_MAX}>, "feedback": "<actionable feedback>" }}, '
    "and at the end add a field \"common_improvements\" with an array of up to "
    f"{MAX_COMMON_IMPROVEMENTS} cross-metric suggestions. "
    "Output only valid JSON, with no text before or after it."
)

# Label / attribute pairs, in rendering order
VIDEO_DETAIL_FIELDS: tuple[tuple[str, str], ...] = (
    ("Video URL", "url"),
    ("Title", "title"),
    ("Video Type", "video_type"),
    ("Purpose", "purpose"),
    ("Key Concepts", "key_concepts"),
    ("Justifications", "justifications"),
    ("Evaluation Goal", "goal"),
)

# Control characters other than newline
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x09\x0b-\x1f\x7f]")


def _render_value(value: str | None) -> str:
    """Render a field value (None becomes the placeholder)"""
    if value is None:
        return MISSING_FIELD_PLACEHOLDER
    text = value.replace("\r\n", "\n")
    return _CONTROL_CHARS_RE.sub(" ", text)


def build_video_details_section(request: EvaluationRequest) -> str:
    """
    Build the labeled video details block

    Args:
        request: Evaluation request

    Returns:
        One "Label: value" line per field, in VIDEO_DETAIL_FIELDS order
    """
    lines = []
    for label, attr in VIDEO_DETAIL_FIELDS:
        value = getattr(request, attr)
        if attr == "title" and not value:
            value = DEFAULT_TITLE
        lines.append(f"{label}: {_render_value(value)}")
    return "\n".join(lines)


def build_metrics_section(metrics: Sequence[str]) -> str:
    """Build the numbered metric list (numbering starts at 1)"""
    return "\n".join(f"{i + 1}. {_render_value(m)}" for i, m in enumerate(metrics))


def build_prompt(request: EvaluationRequest, metrics: Sequence[str]) -> str:
    """
    Build the evaluation prompt

    The output depends only on the arguments: identical inputs always yield
    an identical prompt.

    Args:
        request: Evaluation request (title already resolved, or None)
        metrics: Metric names to evaluate, in numbering order

    Returns:
        Constructed prompt string

    Raises:
        ValueError: If metrics is empty
    """
    if not metrics:
        raise ValueError("At least one metric is required to build a prompt.")

    prompt_parts = [
        PROMPT_HEADER,
        build_video_details_section(request),
        METRICS_HEADING,
        build_metrics_section(metrics),
        OUTPUT_INSTRUCTION,
    ]
    return "\n\n".join(prompt_parts)
