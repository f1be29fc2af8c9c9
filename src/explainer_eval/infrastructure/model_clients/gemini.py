"""
Gemini (Google GenAI SDK) model client
"""

import os
import time

from google import genai
from google.api_core import exceptions as google_exceptions
from google.genai import errors as genai_errors
from google.genai.types import GenerateContentConfig, HttpOptions

from explainer_eval.domain.constants import DEFAULT_MODEL
from explainer_eval.domain.exceptions import ConfigurationError
from explainer_eval.domain.value_objects import ModelResponse
from explainer_eval.infrastructure.model_clients.base import ModelClient, RetryMixin


class GeminiClient(RetryMixin, ModelClient):
    """Model client using the Google GenAI SDK with an API key"""

    def __init__(
        self,
        model_name: str = DEFAULT_MODEL,
        api_key: str | None = None,
        timeout_seconds: int = 60,
        max_retries: int = 2,
        retry_delay_seconds: float = 1.0,
        temperature: float = 0.2,
        max_output_tokens: int = 800,
    ):
        """
        Args:
            model_name: Model name (e.g. gemini-2.0-flash, gemini-2.5-flash)
            api_key: Gemini API key (falls back to GEMINI_API_KEY if not specified)
            timeout_seconds: Timeout in seconds (default: 60)
            max_retries: Maximum number of attempts (default: 2)
            retry_delay_seconds: Base delay for exponential backoff
            temperature: Sampling temperature
            max_output_tokens: Maximum number of output tokens
        """
        self.model_name = model_name
        self.api_key = api_key or os.environ.get("GEMINI_API_KEY")
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self.retry_delay_seconds = retry_delay_seconds

        if not self.api_key:
            raise ConfigurationError("GEMINI_API_KEY is not set")

        # Timeout is configured via HttpOptions (milliseconds)
        self.client = genai.Client(
            api_key=self.api_key,
            http_options=HttpOptions(timeout=timeout_seconds * 1000),
        )
        self.generation_config = GenerateContentConfig(
            temperature=temperature,
            max_output_tokens=max_output_tokens,
        )

    def generate(self, prompt: str) -> ModelResponse:
        """
        Send a prompt and retrieve the response

        Args:
            prompt: Input prompt

        Returns:
            ModelResponse: The model's response

        Raises:
            Exception: If the maximum number of retries is exceeded
        """
        def _call():
            start_time = time.time()
            response = self.client.models.generate_content(
                model=self.model_name,
                contents=prompt,
                config=self.generation_config,
            )
            end_time = time.time()

            latency_ms = int((end_time - start_time) * 1000)

            # Retrieve token usage
            input_tokens = 0
            output_tokens = 0
            if hasattr(response, "usage_metadata") and response.usage_metadata:
                input_tokens = getattr(response.usage_metadata, "prompt_token_count", 0) or 0
                output_tokens = getattr(response.usage_metadata, "candidates_token_count", 0) or 0

            return ModelResponse(
                output=(response.text or "").strip(),
                latency_ms=latency_ms,
                model_name=self.model_name,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
            )

        return self._with_retry(
            _call,
            retryable_exceptions=(
                genai_errors.ServerError,
                google_exceptions.DeadlineExceeded,
                google_exceptions.ServiceUnavailable,
                google_exceptions.ResourceExhausted,
            ),
        )
