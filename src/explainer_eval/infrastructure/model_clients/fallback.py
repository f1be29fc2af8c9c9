"""
Fallback model client

Runs an ordered chain of backend strategies behind the ModelClient interface.
Each strategy either succeeds, is unavailable (its client cannot be built
because configuration is missing; skipped), or fails (logged, next strategy
is tried).
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Sequence

from explainer_eval.domain.exceptions import BackendError, ConfigurationError
from explainer_eval.domain.value_objects import ModelResponse
from explainer_eval.infrastructure.model_clients.base import ModelClient

logger = logging.getLogger(__name__)

ClientFactory = Callable[[], ModelClient]


class FallbackClient(ModelClient):
    """ModelClient that tries each strategy in priority order"""

    def __init__(self, strategies: Sequence[tuple[str, ClientFactory]]):
        """
        Args:
            strategies: (name, factory) pairs in priority order. A factory
                raising ConfigurationError marks the strategy unavailable.
        """
        if not strategies:
            raise ConfigurationError("At least one backend strategy is required")
        self.strategies = list(strategies)
        self._clients: dict[str, ModelClient] = {}
        self._lock = threading.Lock()

    @property
    def strategy_names(self) -> list[str]:
        return [name for name, _ in self.strategies]

    def _client_for(self, name: str, factory: ClientFactory) -> ModelClient:
        # Concurrent requests share one client per strategy
        with self._lock:
            client = self._clients.get(name)
            if client is None:
                client = factory()
                self._clients[name] = client
            return client

    def close(self) -> None:
        """Close every strategy client built so far"""
        with self._lock:
            clients = list(self._clients.values())
            self._clients.clear()
        for client in clients:
            client.close()

    def generate(self, prompt: str) -> ModelResponse:
        """
        Send the prompt through the first strategy that succeeds

        Raises:
            ConfigurationError: If no strategy is available
            BackendError: If every available strategy failed
        """
        unavailable: list[tuple[str, ConfigurationError]] = []
        failures: list[tuple[str, Exception]] = []

        for name, factory in self.strategies:
            try:
                client = self._client_for(name, factory)
            except ConfigurationError as e:
                logger.debug("Backend strategy %s unavailable: %s", name, e)
                unavailable.append((name, e))
                continue

            try:
                return client.generate(prompt)
            except Exception as e:
                logger.warning("Backend strategy %s failed: %s", name, e)
                failures.append((name, e))

        if not failures:
            reasons = "; ".join(str(e) for _, e in unavailable)
            raise ConfigurationError(f"No backend strategy is available: {reasons}")

        last_name, last_error = failures[-1]
        summary = "; ".join(f"{name}: {e}" for name, e in failures)
        raise BackendError(
            f"All backend strategies failed: {summary}",
            status_code=getattr(last_error, "status_code", None),
            body=getattr(last_error, "body", None),
            failures=failures,
        ) from last_error
