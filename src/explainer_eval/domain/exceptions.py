"""
Domain Exceptions

Error taxonomy shared by the evaluation pipeline and its collaborators.
A reply that cannot be parsed is not an error; see response_normalizer.
"""


class EvaluatorError(Exception):
    """Base class for evaluator errors"""
    pass


class ConfigurationError(EvaluatorError):
    """A required credential or configuration value is missing or invalid"""
    pass


class ValidationError(EvaluatorError):
    """Caller input is invalid (raised before any backend call)"""
    pass


class BackendError(EvaluatorError):
    """
    The text-generation backend failed

    Raised when the service returns a non-success status, or when every
    strategy in a fallback chain failed.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str | None = None,
        failures: list[tuple[str, Exception]] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.failures = failures or []
