"""
Model client package

Provides a unified interface to each text-generation backend.
"""

from explainer_eval.infrastructure.model_clients.base import ModelClient
from explainer_eval.infrastructure.model_clients.factory import (
    STRATEGY_NAMES,
    create_backend,
    create_client,
)
from explainer_eval.infrastructure.model_clients.fallback import FallbackClient
from explainer_eval.domain.value_objects import ModelResponse

__all__ = [
    "FallbackClient",
    "ModelClient",
    "ModelResponse",
    "STRATEGY_NAMES",
    "create_backend",
    "create_client",
]
