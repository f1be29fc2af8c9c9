"""
Domain Layer

Defines constants, entities, value objects and exceptions that form the core
of the business logic. Has no dependencies on external libraries.
"""

from explainer_eval.domain.constants import (
    ALL_METRICS,
    DEFAULT_TITLE,
    METRIC_CATALOG,
    MISSING_FIELD_PLACEHOLDER,
)
from explainer_eval.domain.entities import (
    EvaluationOutcome,
    EvaluationRequest,
    HealthCheckResult,
    select_metrics,
)
from explainer_eval.domain.exceptions import (
    BackendError,
    ConfigurationError,
    EvaluatorError,
    ValidationError,
)
from explainer_eval.domain.value_objects import (
    MetricResult,
    ModelResponse,
    ReplyShape,
)

__all__ = [
    # constants
    "ALL_METRICS",
    "DEFAULT_TITLE",
    "METRIC_CATALOG",
    "MISSING_FIELD_PLACEHOLDER",
    # entities
    "EvaluationOutcome",
    "EvaluationRequest",
    "HealthCheckResult",
    "select_metrics",
    # exceptions
    "BackendError",
    "ConfigurationError",
    "EvaluatorError",
    "ValidationError",
    # value objects
    "MetricResult",
    "ModelResponse",
    "ReplyShape",
]
