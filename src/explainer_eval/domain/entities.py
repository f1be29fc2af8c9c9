"""
Domain Entities

Defines the primary data structures used in the evaluation process.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Sequence

from explainer_eval.domain.constants import ALL_METRICS, METRIC_CATALOG
from explainer_eval.domain.exceptions import ValidationError
from explainer_eval.domain.value_objects import MetricResult, ReplyShape


# Wire (camelCase) key -> field name
_REQUEST_KEY_ALIASES = {
    "videoType": "video_type",
    "keyConcepts": "key_concepts",
}

_REQUEST_FIELDS = (
    "url",
    "video_type",
    "purpose",
    "key_concepts",
    "justifications",
    "goal",
    "title",
)


@dataclass(frozen=True)
class EvaluationRequest:
    """Description of the video to evaluate"""
    url: str | None
    video_type: str | None = None
    purpose: str | None = None
    key_concepts: str | None = None
    justifications: str | None = None
    goal: str | None = None
    title: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "EvaluationRequest":
        """Create from a request payload (accepts camelCase and snake_case keys)"""
        values: dict[str, Any] = {}
        for key, value in data.items():
            name = _REQUEST_KEY_ALIASES.get(key, key)
            if name in _REQUEST_FIELDS:
                values[name] = None if value is None else str(value)
        values.setdefault("url", None)
        return cls(**values)

    def validate(self) -> None:
        """
        Raises:
            ValidationError: If url is missing or blank
        """
        if not self.url or not self.url.strip():
            raise ValidationError("Missing url")

    def with_title(self, title: str) -> "EvaluationRequest":
        """Return a copy carrying the resolved title"""
        return replace(self, title=title)


def select_metrics(selection: str | Sequence[str] | None = None) -> list[str]:
    """
    Resolve a metric selection to an ordered list of metric names

    Args:
        selection: None or "all" for the whole catalog, a single metric name,
            or a sequence of metric names

    Returns:
        Metric names in catalog order (names outside the catalog follow, in
        the order given)

    Raises:
        ValueError: If the selection is empty
    """
    if selection is None or selection == ALL_METRICS:
        return list(METRIC_CATALOG)
    if isinstance(selection, str):
        if not selection.strip():
            raise ValueError("Metric selection must not be empty")
        return [selection]

    names = list(dict.fromkeys(selection))
    if not names:
        raise ValueError("Metric selection must not be empty")
    in_catalog = [m for m in METRIC_CATALOG if m in names]
    extra = [m for m in names if m not in METRIC_CATALOG]
    return in_catalog + extra


@dataclass
class EvaluationOutcome:
    """Result of one evaluation call (always producible, even for unparseable replies)"""
    raw_text: str
    metric_results: list[MetricResult] = field(default_factory=list)
    common_improvements: list[str] = field(default_factory=list)
    parsed: Any = None
    shape: ReplyShape = ReplyShape.UNPARSED

    @property
    def is_structured(self) -> bool:
        return self.parsed is not None

    def to_dict(self) -> dict:
        """Convert to the API response payload"""
        return {
            "ok": True,
            "raw": self.raw_text,
            "parsed": self.parsed,
            "results": [r.to_dict() for r in self.metric_results],
            "common_improvements": list(self.common_improvements),
        }


@dataclass
class HealthCheckResult:
    """Health check result"""
    strategy: str
    success: bool
    latency_ms: int | None
    error: str | None
