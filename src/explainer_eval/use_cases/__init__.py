"""
Use Cases Layer

Aggregates business logic and provides use cases called from the CLI, the
API and the dashboard.
"""

from explainer_eval.use_cases.evaluation import (
    RESULT_COLUMNS,
    evaluate_all,
    evaluate_metric,
    outcome_to_frame,
    resolve_title,
    run_evaluation,
)
from explainer_eval.use_cases.health_check import (
    HEALTH_CHECK_PROMPT,
    health_check_strategy,
    run_health_check,
)

__all__ = [
    # evaluation
    "RESULT_COLUMNS",
    "evaluate_all",
    "evaluate_metric",
    "outcome_to_frame",
    "resolve_title",
    "run_evaluation",
    # health_check
    "HEALTH_CHECK_PROMPT",
    "health_check_strategy",
    "run_health_check",
]
