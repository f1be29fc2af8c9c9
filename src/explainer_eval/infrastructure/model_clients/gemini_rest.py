"""
Gemini REST model client

Calls the generateContent endpoint directly over HTTP (no SDK).
"""

import json
import logging
import os
import time

import httpx

from explainer_eval.domain.constants import DEFAULT_MODEL
from explainer_eval.domain.exceptions import BackendError, ConfigurationError
from explainer_eval.domain.value_objects import ModelResponse
from explainer_eval.infrastructure.model_clients.base import ModelClient, RetryMixin

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


def extract_text(data: dict) -> str:
    """
    Extract the generated text from a REST response payload

    Supports the generateContent shape (candidates[].content.parts[].text),
    a plain "output" field, and the OpenAI-compatible choices shape. Anything
    else is returned as serialized JSON so the caller still gets text.
    """
    candidates = data.get("candidates")
    if isinstance(candidates, list) and candidates:
        parts = (candidates[0].get("content") or {}).get("parts") or []
        texts = [p["text"] for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str)]
        if texts:
            return "".join(texts)

    output = data.get("output")
    if isinstance(output, str):
        return output
    if isinstance(output, list) and output and isinstance(output[0], dict) and output[0].get("content"):
        return str(output[0]["content"])

    choices = data.get("choices")
    if isinstance(choices, list) and choices:
        content = (choices[0].get("message") or {}).get("content")
        if content:
            return content

    return json.dumps(data, ensure_ascii=False)


class GeminiRestClient(RetryMixin, ModelClient):
    """Gemini client using raw HTTP calls"""

    def __init__(
        self,
        model_name: str = DEFAULT_MODEL,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout_seconds: int = 60,
        max_retries: int = 2,
        retry_delay_seconds: float = 1.0,
        temperature: float = 0.2,
        max_output_tokens: int = 800,
        http_client: httpx.Client | None = None,
    ):
        """
        Args:
            model_name: Model name (e.g. gemini-2.0-flash)
            api_key: Gemini API key (falls back to GEMINI_API_KEY if not specified)
            base_url: API base URL (falls back to GEMINI_REST_BASE_URL, then the public endpoint)
            timeout_seconds: Request timeout in seconds
            max_retries: Maximum number of attempts for transport errors
            retry_delay_seconds: Base delay for exponential backoff
            temperature: Sampling temperature
            max_output_tokens: Maximum number of output tokens
            http_client: Preconfigured httpx.Client (mainly for tests). It is
                left open by close(); only a client created here is closed.
        """
        self.model_name = model_name
        self.api_key = api_key or os.environ.get("GEMINI_API_KEY")
        self.base_url = (base_url or os.environ.get("GEMINI_REST_BASE_URL") or DEFAULT_BASE_URL).rstrip("/")
        self.max_retries = max_retries
        self.retry_delay_seconds = retry_delay_seconds
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens

        if not self.api_key:
            raise ConfigurationError("GEMINI_API_KEY is not set")

        self._owns_client = http_client is None
        self.client = http_client or httpx.Client(timeout=timeout_seconds)

    def close(self) -> None:
        """Release the connection pool of the HTTP client created by this instance"""
        if self._owns_client:
            self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model_name}:generateContent"

    def generate(self, prompt: str) -> ModelResponse:
        """
        Send a prompt and retrieve the response

        Raises:
            BackendError: If the API returns a non-success status
            httpx.TransportError: If the request fails after all retries
        """
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_output_tokens,
            },
        }

        def _call():
            start_time = time.time()
            resp = self.client.post(
                self.endpoint,
                json=payload,
                headers={
                    "x-goog-api-key": self.api_key,
                    "Content-Type": "application/json",
                },
            )
            end_time = time.time()

            if not resp.is_success:
                raise BackendError(
                    f"Gemini API error {resp.status_code}: {resp.text}",
                    status_code=resp.status_code,
                    body=resp.text,
                )

            data = resp.json()
            usage = data.get("usageMetadata") or {}
            return ModelResponse(
                output=extract_text(data).strip(),
                latency_ms=int((end_time - start_time) * 1000),
                model_name=self.model_name,
                input_tokens=usage.get("promptTokenCount", 0) or 0,
                output_tokens=usage.get("candidatesTokenCount", 0) or 0,
            )

        return self._with_retry(_call, retryable_exceptions=(httpx.TransportError,))
