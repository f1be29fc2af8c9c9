"""
Domain Value Objects

Defines immutable data structures representing values such as per-metric
results and model responses.
"""

from dataclasses import dataclass
from enum import Enum


class ReplyShape(str, Enum):
    """Structural shape recognized in a parsed backend reply"""
    RESULT_LIST = "result_list"              # [{"metric", "score", ...}, ...]
    SINGLE_RESULT = "single_result"          # {"metric", "score", ...}
    RESULTS_UNDER_KEY = "results_under_key"  # {"results": [...]} / {"metrics": [...]}
    RESULT_VALUES = "result_values"          # {"<name>": {"metric", "score", ...}, ...}
    UNRECOGNIZED = "unrecognized"
    UNPARSED = "unparsed"                    # reply was not structured data at all


@dataclass(frozen=True)
class MetricResult:
    """Score and feedback for one metric (score is expected in 1-10, not enforced)"""
    metric: str
    score: float | int
    feedback: str = ""

    def to_dict(self) -> dict:
        return {"metric": self.metric, "score": self.score, "feedback": self.feedback}


@dataclass
class ModelResponse:
    """Model response"""
    output: str
    latency_ms: int
    model_name: str
    input_tokens: int = 0
    output_tokens: int = 0
