"""
Evaluation Execution

Runs the pipeline for one request: resolve title, build prompt, call the
backend, normalize the reply.
"""

import logging
from typing import Sequence

import pandas as pd

from explainer_eval.domain.constants import DEFAULT_TITLE
from explainer_eval.domain.entities import EvaluationOutcome, EvaluationRequest, select_metrics
from explainer_eval.domain.exceptions import ValidationError
from explainer_eval.infrastructure.model_clients.base import ModelClient
from explainer_eval.prompt_builder import build_prompt
from explainer_eval.response_normalizer import normalize
from explainer_eval.title_store import TitleStore

logger = logging.getLogger(__name__)

RESULT_COLUMNS = ["url", "metric", "score", "feedback"]


def resolve_title(request: EvaluationRequest, title_store: TitleStore | None = None) -> str:
    """
    Resolve the title to embed in the prompt

    Priority: title on the request > stored title for the URL > DEFAULT_TITLE
    """
    if request.title and request.title.strip():
        return request.title
    if title_store is not None and request.url:
        stored = title_store.get(request.url)
        if stored:
            return stored
    return DEFAULT_TITLE


def run_evaluation(
    request: EvaluationRequest,
    metrics: Sequence[str],
    backend: ModelClient,
    title_store: TitleStore | None = None,
) -> EvaluationOutcome:
    """
    Execute one evaluation.

    Args:
        request: Evaluation request
        metrics: Metric names to evaluate (non-empty, in numbering order)
        backend: Text-generation backend
        title_store: Title lookup (read only)

    Returns:
        EvaluationOutcome: Always returned once the backend replied, even if
        the reply could not be parsed

    Raises:
        ValidationError: If the request is invalid (no backend call is made)
        ConfigurationError, BackendError: Propagated unchanged from the backend
    """
    request.validate()
    if not metrics:
        raise ValidationError("Missing metric")

    resolved = request.with_title(resolve_title(request, title_store))
    prompt = build_prompt(resolved, metrics)

    logger.info("Evaluating %s (%d metric(s))", request.url, len(metrics))
    response = backend.generate(prompt)

    outcome = normalize(response.output, metrics)
    logger.info(
        "Recovered %d/%d metric result(s) for %s (shape: %s, %dms)",
        len(outcome.metric_results), len(metrics), request.url,
        outcome.shape.value, response.latency_ms,
    )
    return outcome


def evaluate_metric(
    request: EvaluationRequest,
    metric: str | None,
    backend: ModelClient,
    title_store: TitleStore | None = None,
) -> EvaluationOutcome:
    """Evaluate a single metric"""
    request.validate()
    if not metric or not metric.strip():
        raise ValidationError("Missing metric")
    return run_evaluation(request, select_metrics(metric), backend, title_store)


def evaluate_all(
    request: EvaluationRequest,
    backend: ModelClient,
    title_store: TitleStore | None = None,
) -> EvaluationOutcome:
    """Evaluate every metric in the catalog with one backend call"""
    return run_evaluation(request, select_metrics(), backend, title_store)


def outcome_to_frame(outcome: EvaluationOutcome, url: str) -> pd.DataFrame:
    """
    Convert metric results to a DataFrame (for CSV export and charts)

    Returns:
        DataFrame with RESULT_COLUMNS (empty when nothing was recovered)
    """
    rows = [
        {"url": url, "metric": r.metric, "score": r.score, "feedback": r.feedback}
        for r in outcome.metric_results
    ]
    return pd.DataFrame(rows, columns=RESULT_COLUMNS)
