"""
Backend strategy health check

Sends a one-line prompt through each configured strategy before an evaluation
run so that strategies without credentials or connectivity are reported
up front.
"""

from typing import Callable, Iterable

from explainer_eval.domain.entities import HealthCheckResult
from explainer_eval.infrastructure.model_clients.base import ModelClient


HEALTH_CHECK_PROMPT = "Reply with only 'OK' if you can read this message."

# Errors longer than this are cut in the printed report
ERROR_DISPLAY_LIMIT = 100

ClientBuilder = Callable[[str], ModelClient]


def health_check_strategy(strategy: str, create_client_fn: ClientBuilder) -> HealthCheckResult:
    """
    Build the client for one strategy and send the check prompt.

    A strategy passes only when it returns non-blank text. Build and call
    errors are captured in the result instead of raised. The client is
    closed once checked.
    """
    client = None
    latency_ms = None
    try:
        client = create_client_fn(strategy)
        response = client.generate(HEALTH_CHECK_PROMPT)
    except Exception as e:
        error = str(e)
    else:
        latency_ms = response.latency_ms
        error = None if response.output.strip() else f"{strategy} returned an empty response"
    finally:
        if client is not None:
            client.close()

    return HealthCheckResult(
        strategy=strategy,
        success=error is None,
        latency_ms=latency_ms,
        error=error,
    )


def _report_lines(result: HealthCheckResult) -> list[str]:
    if result.success:
        return [f"OK ({result.latency_ms}ms)"]
    return ["FAILED", f"    Error: {(result.error or 'Unknown error')[:ERROR_DISPLAY_LIMIT]}"]


def run_health_check(
    strategies: Iterable[str],
    create_client_fn: ClientBuilder | None = None,
) -> tuple[list[str], list[HealthCheckResult]]:
    """
    Check every strategy in chain order and print a short report.

    Args:
        strategies: Strategy names in priority order
        create_client_fn: Client builder (defaults to the model_clients factory)

    Returns:
        tuple: (names of the strategies that passed, every check result)
    """
    if create_client_fn is None:
        from explainer_eval.infrastructure.model_clients.factory import create_client
        create_client_fn = create_client

    print("=== Backend Health Check ===\n")
    results: list[HealthCheckResult] = []
    for strategy in strategies:
        print(f"  {strategy}... ", end="", flush=True)
        result = health_check_strategy(strategy, create_client_fn)
        print("\n".join(_report_lines(result)))
        results.append(result)
    print()

    return [r.strategy for r in results if r.success], results
