"""
model_clients パッケージの単体テスト

外部APIは呼び出さず、SDKクライアントはモックに差し替える。
"""

import json
import time
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock, patch

import httpx
import pytest

from explainer_eval.domain.exceptions import BackendError, ConfigurationError
from explainer_eval.domain.value_objects import ModelResponse
from explainer_eval.evaluator_config import BackendConfig, EvaluatorConfig, GeminiConfig
from explainer_eval.infrastructure.model_clients import (
    STRATEGY_NAMES,
    FallbackClient,
    create_backend,
    create_client,
)
from explainer_eval.infrastructure.model_clients.base import RetryMixin
from explainer_eval.infrastructure.model_clients.gemini_rest import GeminiRestClient, extract_text


def _response(output="ok", model_name="mock"):
    return ModelResponse(output=output, latency_ms=5, model_name=model_name)


class _Flaky(RetryMixin):
    def __init__(self, max_retries):
        self.max_retries = max_retries
        self.retry_delay_seconds = 0


class TestRetryMixin:
    """RetryMixin のテスト"""

    def test_returns_first_success(self):
        fn = MagicMock(return_value="done")
        assert _Flaky(3)._with_retry(fn) == "done"
        assert fn.call_count == 1

    def test_retries_until_success(self):
        fn = MagicMock(side_effect=[ConnectionError("a"), ConnectionError("b"), "done"])
        assert _Flaky(3)._with_retry(fn, retryable_exceptions=(ConnectionError,)) == "done"
        assert fn.call_count == 3

    def test_raises_last_exception(self):
        fn = MagicMock(side_effect=[ConnectionError("first"), ConnectionError("last")])
        with pytest.raises(ConnectionError, match="last"):
            _Flaky(2)._with_retry(fn, retryable_exceptions=(ConnectionError,))

    def test_non_retryable_propagates_immediately(self):
        fn = MagicMock(side_effect=KeyError("bad"))
        with pytest.raises(KeyError):
            _Flaky(3)._with_retry(fn, retryable_exceptions=(ConnectionError,))
        assert fn.call_count == 1

    def test_exponential_backoff(self):
        flaky = _Flaky(3)
        flaky.retry_delay_seconds = 0.5
        fn = MagicMock(side_effect=[ConnectionError(), ConnectionError(), "done"])
        with patch("explainer_eval.infrastructure.model_clients.base.time.sleep") as sleep:
            flaky._with_retry(fn, retryable_exceptions=(ConnectionError,))
        assert [c.args[0] for c in sleep.call_args_list] == [0.5, 1.0]

    def test_max_retries_must_be_positive(self):
        with pytest.raises(ValueError, match="max_retries"):
            _Flaky(0)._with_retry(MagicMock())


class TestCreateClient:
    """create_client のテスト"""

    @pytest.fixture(autouse=True)
    def _no_keys(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        monkeypatch.delenv("GEMINI_REST_BASE_URL", raising=False)

    def test_unknown_strategy(self):
        with pytest.raises(ConfigurationError, match="Unknown backend strategy"):
            create_client("gpt-9", EvaluatorConfig())

    @pytest.mark.parametrize("strategy", ["gemini", "gemini-rest"])
    def test_gemini_requires_key(self, strategy):
        with pytest.raises(ConfigurationError, match="GEMINI_API_KEY"):
            create_client(strategy, EvaluatorConfig())

    def test_claude_requires_key(self):
        with pytest.raises(ConfigurationError, match="ANTHROPIC_API_KEY"):
            create_client("claude", EvaluatorConfig())

    @patch("explainer_eval.infrastructure.model_clients.gemini.genai.Client")
    def test_gemini_client(self, mock_genai):
        config = EvaluatorConfig(
            backend=BackendConfig(model="gemini-2.5-flash", timeout_seconds=30),
            gemini=GeminiConfig(api_key="test-key"),
        )
        client = create_client("gemini", config)
        assert client.model_name == "gemini-2.5-flash"
        assert mock_genai.call_args.kwargs["api_key"] == "test-key"

    def test_gemini_key_from_env(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "env-key")
        client = create_client("gemini-rest", EvaluatorConfig())
        assert client.api_key == "env-key"
        assert client.endpoint == (
            "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.0-flash:generateContent"
        )

    @patch("explainer_eval.infrastructure.model_clients.claude.Anthropic")
    def test_claude_key_from_env(self, mock_anthropic):
        with patch.dict("os.environ", {"ANTHROPIC_API_KEY": "env-key"}):
            client = create_client("claude", EvaluatorConfig())
        assert client.model_name == "claude-haiku-4-5-20251001"
        mock_anthropic.assert_called_once_with(api_key="env-key", timeout=60)

    @patch("explainer_eval.infrastructure.model_clients.lmstudio.OpenAI")
    def test_lmstudio_client(self, mock_openai):
        client = create_client("lmstudio", EvaluatorConfig())
        assert client.api_model_name == "qwen2.5-7b"
        assert mock_openai.call_args.kwargs["base_url"] == "http://localhost:1234/v1"

    def test_strategy_names(self):
        assert STRATEGY_NAMES == ("gemini", "gemini-rest", "claude", "lmstudio")


class TestCreateBackend:
    def test_builds_chain_in_order(self):
        config = EvaluatorConfig(backend=BackendConfig(strategies=["claude", "gemini"]))
        backend = create_backend(config)
        assert isinstance(backend, FallbackClient)
        assert backend.strategy_names == ["claude", "gemini"]

    def test_unknown_strategy_rejected(self):
        config = EvaluatorConfig(backend=BackendConfig(strategies=["gemini", "bogus"]))
        with pytest.raises(ConfigurationError, match="bogus"):
            create_backend(config)

    def test_empty_chain_rejected(self):
        config = EvaluatorConfig(backend=BackendConfig(strategies=[]))
        with pytest.raises(ConfigurationError):
            create_backend(config)

    def test_clients_are_not_built_eagerly(self, monkeypatch):
        """認証情報がなくても構築時点ではエラーにならない"""
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        create_backend(EvaluatorConfig())


class TestFallbackClient:
    """FallbackClient のテスト"""

    def _client(self, response=None, error=None):
        client = MagicMock()
        if error is not None:
            client.generate.side_effect = error
        else:
            client.generate.return_value = response or _response()
        return client

    def test_first_strategy_wins(self):
        first = self._client(_response("first"))
        second = self._client(_response("second"))
        backend = FallbackClient([("a", lambda: first), ("b", lambda: second)])

        assert backend.generate("p").output == "first"
        second.generate.assert_not_called()

    def test_falls_back_on_failure(self):
        first = self._client(error=RuntimeError("boom"))
        second = self._client(_response("second"))
        backend = FallbackClient([("a", lambda: first), ("b", lambda: second)])

        assert backend.generate("p").output == "second"
        first.generate.assert_called_once_with("p")

    def test_unavailable_strategy_skipped(self):
        def missing():
            raise ConfigurationError("GEMINI_API_KEY is not set")

        second = self._client(_response("second"))
        backend = FallbackClient([("gemini", missing), ("b", lambda: second)])
        assert backend.generate("p").output == "second"

    def test_no_strategy_available(self):
        def missing():
            raise ConfigurationError("GEMINI_API_KEY is not set")

        backend = FallbackClient([("gemini", missing), ("gemini-rest", missing)])
        with pytest.raises(ConfigurationError, match="No backend strategy is available"):
            backend.generate("p")

    def test_all_strategies_failed(self):
        last = BackendError("Gemini API error 503: down", status_code=503, body="down")
        first = self._client(error=RuntimeError("boom"))
        second = self._client(error=last)
        backend = FallbackClient([("gemini", lambda: first), ("gemini-rest", lambda: second)])

        with pytest.raises(BackendError) as exc_info:
            backend.generate("p")

        error = exc_info.value
        assert "gemini: boom" in str(error)
        assert "gemini-rest: Gemini API error 503: down" in str(error)
        assert error.status_code == 503
        assert error.body == "down"
        assert [name for name, _ in error.failures] == ["gemini", "gemini-rest"]
        assert error.__cause__ is last

    def test_client_built_once(self):
        factory = MagicMock(return_value=self._client())
        backend = FallbackClient([("a", factory)])
        backend.generate("p")
        backend.generate("q")
        assert factory.call_count == 1

    def test_empty_strategies(self):
        with pytest.raises(ConfigurationError):
            FallbackClient([])

    def test_concurrent_requests_build_client_once(self):
        """同時リクエストでも戦略ごとのクライアントは1つだけ構築される"""
        built = []

        def slow_factory():
            time.sleep(0.05)
            client = self._client()
            built.append(client)
            return client

        backend = FallbackClient([("gemini", slow_factory)])
        with ThreadPoolExecutor(max_workers=8) as pool:
            outputs = list(pool.map(backend.generate, [f"p{i}" for i in range(8)]))

        assert len(built) == 1
        assert [o.output for o in outputs] == ["ok"] * 8
        assert built[0].generate.call_count == 8

    def test_close_closes_built_clients(self):
        def missing():
            raise ConfigurationError("GEMINI_API_KEY is not set")

        second = self._client()
        backend = FallbackClient([("gemini", missing), ("b", lambda: second)])
        backend.generate("p")
        backend.close()

        second.close.assert_called_once_with()
        assert backend._clients == {}

    def test_close_before_use(self):
        factory = MagicMock()
        FallbackClient([("a", factory)]).close()
        factory.assert_not_called()


class TestExtractText:
    """REST応答からのテキスト抽出テスト"""

    def test_candidates(self):
        data = {"candidates": [{"content": {"parts": [{"text": "Hello "}, {"text": "world"}]}}]}
        assert extract_text(data) == "Hello world"

    def test_output_string(self):
        assert extract_text({"output": "plain"}) == "plain"

    def test_output_list(self):
        assert extract_text({"output": [{"content": "first"}]}) == "first"

    def test_choices(self):
        assert extract_text({"choices": [{"message": {"content": "chat"}}]}) == "chat"

    def test_unknown_shape_serialized(self):
        data = {"something": "else"}
        assert json.loads(extract_text(data)) == data


class TestGeminiRestClient:
    """GeminiRestClient のテスト (httpx.MockTransport 使用)"""

    def _client(self, handler, **kwargs):
        http_client = httpx.Client(transport=httpx.MockTransport(handler))
        return GeminiRestClient(
            "gemini-2.0-flash",
            api_key="test-key",
            base_url="https://example.test/v1beta/",
            retry_delay_seconds=0,
            http_client=http_client,
            **kwargs,
        )

    def test_success(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["key"] = request.headers["x-goog-api-key"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "candidates": [{"content": {"parts": [{"text": ' {"metric": "A", "score": 7} '}]}}],
                "usageMetadata": {"promptTokenCount": 12, "candidatesTokenCount": 8},
            })

        response = self._client(handler, temperature=0.5, max_output_tokens=100).generate("prompt text")

        assert seen["url"] == "https://example.test/v1beta/models/gemini-2.0-flash:generateContent"
        assert seen["key"] == "test-key"
        assert seen["body"]["contents"][0]["parts"][0]["text"] == "prompt text"
        assert seen["body"]["generationConfig"] == {"temperature": 0.5, "maxOutputTokens": 100}
        assert response.output == '{"metric": "A", "score": 7}'
        assert response.input_tokens == 12
        assert response.output_tokens == 8

    def test_error_status(self):
        def handler(request):
            return httpx.Response(429, text="quota exceeded")

        with pytest.raises(BackendError, match="Gemini API error 429: quota exceeded") as exc_info:
            self._client(handler).generate("p")
        assert exc_info.value.status_code == 429
        assert exc_info.value.body == "quota exceeded"

    def test_transport_error_retried(self):
        calls = {"n": 0}

        def handler(request):
            calls["n"] += 1
            if calls["n"] == 1:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, json={"output": "recovered"})

        response = self._client(handler, max_retries=2).generate("p")
        assert response.output == "recovered"
        assert calls["n"] == 2

    def test_missing_key(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        with pytest.raises(ConfigurationError):
            GeminiRestClient("gemini-2.0-flash")

    def test_close_leaves_injected_client_open(self):
        client = self._client(lambda request: httpx.Response(200, json={"output": "ok"}))
        client.close()
        assert client.client.is_closed is False

    def test_close_owned_client(self):
        client = GeminiRestClient("gemini-2.0-flash", api_key="test-key")
        with client:
            assert client.client.is_closed is False
        assert client.client.is_closed is True
