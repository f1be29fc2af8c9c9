"""
Response Normalizer

Recovers structured metric results from the backend's reply text.

Parse order:
1. The whole reply as JSON
2. The substring from the first "{" to the last "}" as JSON
3. Otherwise the reply is kept as raw text only (not an error)

Parsed values are cleaned so they always re-serialize as strict JSON: NaN and
infinite numbers become null, unpaired surrogates become "?", and replies
nested deeper than MAX_NESTING_DEPTH count as unparsed.

A parsed value is then classified by an ordered list of shape detectors
(SHAPE_DETECTORS); the first detector that recognizes the value wins.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from explainer_eval.domain.entities import EvaluationOutcome
from explainer_eval.domain.value_objects import MetricResult, ReplyShape

logger = logging.getLogger(__name__)

COMMON_IMPROVEMENTS_KEY = "common_improvements"

# Conventional keys under which a reply may nest its result list, in priority order
RESULT_LIST_KEYS = ("results", "metrics")


@dataclass
class DetectedShape:
    """Shape of a parsed reply and the result-like entries it carries"""
    shape: ReplyShape
    entries: list[dict] = field(default_factory=list)
    key: str | None = None  # set for RESULTS_UNDER_KEY


_NOT_PARSED = object()

# Parsed replies nested deeper than this are treated as unstructured
MAX_NESTING_DEPTH = 64


def _clean(value: Any, depth: int = 0) -> Any:
    """
    Make a parsed value safe to re-serialize

    Non-finite floats (NaN, Infinity, 1e999) become None and unpaired
    surrogates in strings become "?".

    Raises:
        ValueError: If nesting exceeds MAX_NESTING_DEPTH
    """
    if depth > MAX_NESTING_DEPTH:
        raise ValueError("Reply nesting is too deep")
    if isinstance(value, dict):
        return {_clean_str(k): _clean(v, depth + 1) for k, v in value.items()}
    if isinstance(value, list):
        return [_clean(v, depth + 1) for v in value]
    if isinstance(value, str):
        return _clean_str(value)
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def _clean_str(text: str) -> str:
    return text.encode("utf-8", "replace").decode("utf-8")


def _loads(text: str) -> Any:
    try:
        return _clean(json.loads(text))
    except (ValueError, TypeError, RecursionError):
        return _NOT_PARSED


def parse_structured(raw_text: str) -> Any | None:
    """
    Parse the reply as structured data

    Args:
        raw_text: Reply text from the backend

    Returns:
        The parsed value, or None when neither the whole text nor the
        outermost brace-delimited substring is valid JSON
    """
    text = raw_text.strip()
    if not text:
        return None

    # 1. Whole text
    data = _loads(text)
    if data is not _NOT_PARSED:
        return data

    # 2. First "{" through last "}"
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end != -1 and start < end:
        data = _loads(text[start:end + 1])
        if data is not _NOT_PARSED:
            return data

    return None


def _coerce_score(value: Any) -> float | int | None:
    """Return a numeric score, or None when the value is not a number"""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        try:
            float(value)
        except OverflowError:
            return None
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
        if not math.isfinite(number):
            return None
        return int(number) if number.is_integer() else number
    return None


def is_result_like(value: Any) -> bool:
    """An entry is result-like when it exposes a metric name and a numeric score"""
    return (
        isinstance(value, dict)
        and isinstance(value.get("metric"), str)
        and _coerce_score(value.get("score")) is not None
    )


def _detect_result_list(data: Any) -> DetectedShape | None:
    if isinstance(data, list):
        return DetectedShape(ReplyShape.RESULT_LIST, [e for e in data if is_result_like(e)])
    return None


def _detect_single_result(data: Any) -> DetectedShape | None:
    if is_result_like(data):
        return DetectedShape(ReplyShape.SINGLE_RESULT, [data])
    return None


def _results_under(key: str) -> Callable[[Any], DetectedShape | None]:
    def detect(data: Any) -> DetectedShape | None:
        if isinstance(data, dict) and isinstance(data.get(key), list):
            entries = [e for e in data[key] if is_result_like(e)]
            if not entries:
                return None
            return DetectedShape(ReplyShape.RESULTS_UNDER_KEY, entries, key=key)
        return None
    detect.__name__ = f"_detect_results_under_{key}"
    return detect


def _detect_result_values(data: Any) -> DetectedShape | None:
    if isinstance(data, dict):
        entries = [v for v in data.values() if is_result_like(v)]
        if entries:
            return DetectedShape(ReplyShape.RESULT_VALUES, entries)
    return None


# Ordered detection policy
SHAPE_DETECTORS: list[Callable[[Any], DetectedShape | None]] = [
    _detect_result_list,
    _detect_single_result,
    *(_results_under(key) for key in RESULT_LIST_KEYS),
    _detect_result_values,
]


def detect_shape(data: Any) -> DetectedShape:
    """Classify a parsed reply (UNRECOGNIZED when no detector matches)"""
    for detector in SHAPE_DETECTORS:
        detected = detector(data)
        if detected is not None:
            return detected
    return DetectedShape(ReplyShape.UNRECOGNIZED)


def _to_metric_result(entry: dict) -> MetricResult:
    feedback = entry.get("feedback")
    if feedback is None:
        feedback = ""
    elif isinstance(feedback, list):
        feedback = "\n".join(str(item) for item in feedback)
    elif not isinstance(feedback, str):
        feedback = str(feedback)
    return MetricResult(
        metric=entry["metric"],
        score=_coerce_score(entry["score"]),
        feedback=feedback,
    )


def match_metric(
    entries: Sequence[dict],
    metric: str,
    claimed: set[int] | None = None,
) -> int | None:
    """
    Find the entry for a requested metric

    An exact name match is preferred; otherwise the first entry whose
    metric name contains the requested name (case-sensitive) is used.
    Entries whose index is in claimed are skipped.

    Returns:
        Index into entries, or None when nothing matches
    """
    claimed = claimed or set()
    for i, entry in enumerate(entries):
        if i not in claimed and entry["metric"] == metric:
            return i
    for i, entry in enumerate(entries):
        if i not in claimed and metric in entry["metric"]:
            return i
    return None


def _select_entries(entries: list[dict], metrics: Sequence[str] | None) -> list[dict]:
    if metrics is None:
        return entries
    claimed: set[int] = set()
    selected = []
    for metric in metrics:
        index = match_metric(entries, metric, claimed)
        if index is None:
            logger.debug("No result returned for metric %r", metric)
            continue
        claimed.add(index)
        selected.append(entries[index])
    return selected


def extract_common_improvements(data: Any) -> list[str]:
    """Read the top-level common_improvements field (absent -> empty list)"""
    if not isinstance(data, dict):
        return []
    value = data.get(COMMON_IMPROVEMENTS_KEY)
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        return [str(item) for item in value if item is not None and str(item).strip()]
    return []


def normalize(raw_text: str | None, metrics: Sequence[str] | None = None) -> EvaluationOutcome:
    """
    Recover an EvaluationOutcome from the backend's reply

    Never raises: a reply that is not structured data yields an outcome with
    empty metric_results and common_improvements, carrying the raw text.

    Args:
        raw_text: Reply text from the backend
        metrics: Requested metric names. When given, each metric claims at most
            one returned entry and results follow the requested order. When
            None, every result-like entry is returned in reply order.

    Returns:
        EvaluationOutcome
    """
    raw_text = raw_text if isinstance(raw_text, str) else ("" if raw_text is None else str(raw_text))

    data = parse_structured(raw_text)
    if data is None:
        logger.debug("Reply is not structured data (%d chars); keeping raw text", len(raw_text))
        return EvaluationOutcome(raw_text=raw_text)

    detected = detect_shape(data)
    if detected.shape is ReplyShape.UNRECOGNIZED:
        logger.debug("Parsed reply has no recognizable result shape")

    entries = _select_entries(detected.entries, metrics)
    return EvaluationOutcome(
        raw_text=raw_text,
        metric_results=[_to_metric_result(e) for e in entries],
        common_improvements=extract_common_improvements(data),
        parsed=data,
        shape=detected.shape,
    )
