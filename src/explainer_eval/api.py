"""
HTTP API

Exposes:
  GET  /api/video-title?url=   -> stored title for a URL
  POST /api/video-title        -> save a title for a URL
  POST /api/evaluate-metric    -> evaluate a single metric
  POST /api/evaluate-all       -> evaluate every catalog metric
  GET  /api/metrics            -> metric catalog
  GET  /api/health             -> liveness

Run with:
    uvicorn explainer_eval.api:create_app --factory
"""

from __future__ import annotations

import logging
import traceback
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from explainer_eval.domain.constants import METRIC_CATALOG
from explainer_eval.domain.entities import EvaluationRequest
from explainer_eval.domain.exceptions import EvaluatorError, ValidationError
from explainer_eval.evaluator_config import EvaluatorConfig, load_config
from explainer_eval.infrastructure.model_clients.base import ModelClient
from explainer_eval.infrastructure.model_clients.factory import create_backend
from explainer_eval.title_store import JsonFileTitleStore, TitleStore
from explainer_eval.use_cases.evaluation import evaluate_all, evaluate_metric

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


class EvaluateAllBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    url: str | None = None
    videoType: str | None = None
    purpose: str | None = None
    keyConcepts: str | None = None
    justifications: str | None = None
    goal: str | None = None


class EvaluateMetricBody(EvaluateAllBody):
    metric: str | None = None


class VideoTitleBody(BaseModel):
    url: str | None = None
    title: str | None = None


def _backend(request: Request) -> ModelClient:
    return request.app.state.backend


def _title_store(request: Request) -> TitleStore:
    return request.app.state.title_store


@router.get("/video-title")
def get_video_title(request: Request, url: str | None = Query(default=None)):
    """Return the stored title for a URL (null when none is stored)."""
    if not url:
        raise ValidationError("Missing url parameter")
    return {"url": url, "title": _title_store(request).get(url)}


@router.post("/video-title")
def save_video_title(request: Request, body: VideoTitleBody):
    """Store a title for a URL."""
    if not body.url or not body.title:
        raise ValidationError("url and title required")
    _title_store(request).set(body.url, body.title)
    return {"ok": True, "url": body.url, "title": body.title}


@router.post("/evaluate-metric")
def post_evaluate_metric(request: Request, body: EvaluateMetricBody):
    """Evaluate one metric for the described video."""
    if not body.url or not body.metric:
        raise ValidationError("Missing url or metric")
    evaluation_request = EvaluationRequest.from_dict(body.model_dump(exclude={"metric"}))
    outcome = evaluate_metric(
        evaluation_request, body.metric, _backend(request), _title_store(request),
    )
    return outcome.to_dict()


@router.post("/evaluate-all")
def post_evaluate_all(request: Request, body: EvaluateAllBody):
    """Evaluate every catalog metric for the described video."""
    evaluation_request = EvaluationRequest.from_dict(body.model_dump())
    outcome = evaluate_all(evaluation_request, _backend(request), _title_store(request))
    return outcome.to_dict()


@router.get("/metrics")
def get_metrics():
    return {"metrics": list(METRIC_CATALOG)}


@router.get("/health")
def get_health():
    return {"ok": True}


async def _validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"error": str(exc)})


async def _evaluator_error_handler(request: Request, exc: EvaluatorError):
    logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": str(exc) or "Evaluation failed"})


async def _unhandled_exception_handler(request: Request, exc: Exception):
    tb = traceback.format_exception(type(exc), exc, exc.__traceback__)
    logger.error("Unhandled %s on %s %s:\n%s", type(exc).__name__, request.method, request.url.path, "".join(tb))
    return JSONResponse(status_code=500, content={"error": str(exc) or "Internal error"})


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    logger.info("Closing backend clients")
    app.state.backend.close()


def create_app(
    config: EvaluatorConfig | None = None,
    backend: ModelClient | None = None,
    title_store: TitleStore | None = None,
) -> FastAPI:
    """
    Create the FastAPI application

    Args:
        config: EvaluatorConfig (loads from env if not provided)
        backend: Text-generation backend (built from config if not provided)
        title_store: Title store (JSON file from config if not provided)
    """
    if config is None:
        config = load_config()

    app = FastAPI(
        title="Explainer Evaluator",
        description="Scores educational video descriptions against a fixed metric rubric",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.backend = backend if backend is not None else create_backend(config)
    app.state.title_store = title_store if title_store is not None else JsonFileTitleStore(
        config.storage.title_store_path, seed_path=config.storage.seed_path,
    )

    app.add_exception_handler(ValidationError, _validation_error_handler)
    app.add_exception_handler(EvaluatorError, _evaluator_error_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
    app.include_router(router)
    return app
