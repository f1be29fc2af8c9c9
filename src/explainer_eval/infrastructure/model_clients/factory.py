"""
Model client factory

Creates backend strategy clients by name and assembles the fallback chain
from configuration.
"""

from __future__ import annotations

from functools import partial

from explainer_eval.domain.exceptions import ConfigurationError
from explainer_eval.evaluator_config import EvaluatorConfig, load_config
from explainer_eval.infrastructure.model_clients.base import ModelClient
from explainer_eval.infrastructure.model_clients.claude import ClaudeClient
from explainer_eval.infrastructure.model_clients.fallback import FallbackClient
from explainer_eval.infrastructure.model_clients.gemini import GeminiClient
from explainer_eval.infrastructure.model_clients.gemini_rest import GeminiRestClient
from explainer_eval.infrastructure.model_clients.lmstudio import LMStudioClient

STRATEGY_NAMES = ("gemini", "gemini-rest", "claude", "lmstudio")


def create_client(strategy: str, config: EvaluatorConfig | None = None) -> ModelClient:
    """
    Create the client for a backend strategy

    Args:
        strategy: Strategy name (one of STRATEGY_NAMES)
        config: EvaluatorConfig (loads from env if not provided)

    Returns:
        ModelClient: The strategy's client instance

    Raises:
        ConfigurationError: If the strategy is unknown or its credential is missing
    """
    if config is None:
        config = load_config()

    backend = config.backend
    common = dict(
        timeout_seconds=backend.timeout_seconds,
        max_retries=backend.max_retries,
        temperature=backend.temperature,
        max_output_tokens=backend.max_output_tokens,
    )

    if strategy == "gemini":
        return GeminiClient(backend.model, api_key=config.gemini.api_key, **common)
    elif strategy == "gemini-rest":
        return GeminiRestClient(
            backend.model,
            api_key=config.gemini.api_key,
            base_url=config.gemini.rest_base_url,
            **common,
        )
    elif strategy == "claude":
        return ClaudeClient(config.claude.model, api_key=config.claude.api_key, **common)
    elif strategy == "lmstudio":
        return LMStudioClient(
            config.lmstudio.model,
            base_url=config.lmstudio.base_url,
            api_key=config.lmstudio.api_key,
            **common,
        )
    raise ConfigurationError(
        f"Unknown backend strategy: {strategy}. Valid values: {list(STRATEGY_NAMES)}"
    )


def create_backend(config: EvaluatorConfig | None = None) -> FallbackClient:
    """
    Build the fallback chain from BackendConfig.strategies

    Clients are created lazily on first use, so a missing credential surfaces
    when a prompt is sent rather than at startup.

    Raises:
        ConfigurationError: If a strategy name is unknown or none is configured
    """
    if config is None:
        config = load_config()

    unknown = [s for s in config.backend.strategies if s not in STRATEGY_NAMES]
    if unknown:
        raise ConfigurationError(
            f"Unknown backend strategy: {', '.join(unknown)}. Valid values: {list(STRATEGY_NAMES)}"
        )

    return FallbackClient([
        (name, partial(create_client, name, config))
        for name in config.backend.strategies
    ])
