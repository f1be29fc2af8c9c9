"""
api.py の単体テスト (fastapi.testclient 使用)
"""

import json

import pytest
from fastapi.testclient import TestClient

from explainer_eval.api import create_app
from explainer_eval.domain.constants import METRIC_CATALOG
from explainer_eval.domain.exceptions import BackendError, ConfigurationError
from explainer_eval.domain.value_objects import ModelResponse
from explainer_eval.evaluator_config import EvaluatorConfig
from explainer_eval.infrastructure.model_clients.base import ModelClient
from explainer_eval.title_store import InMemoryTitleStore


class MockBackend(ModelClient):
    def __init__(self, output: str = "{}", error: Exception | None = None):
        self.output = output
        self.error = error
        self.prompts: list[str] = []
        self.closed = False

    def generate(self, prompt: str) -> ModelResponse:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return ModelResponse(output=self.output, latency_ms=10, model_name="mock")

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def store():
    return InMemoryTitleStore({"v1": "Binary Search"})


def _client(backend, store, raise_server_exceptions=True):
    app = create_app(EvaluatorConfig(), backend=backend, title_store=store)
    return TestClient(app, raise_server_exceptions=raise_server_exceptions)


class TestVideoTitle:
    """タイトルAPIのテスト"""

    def test_get_stored(self, store):
        resp = _client(MockBackend(), store).get("/api/video-title", params={"url": "v1"})
        assert resp.status_code == 200
        assert resp.json() == {"url": "v1", "title": "Binary Search"}

    def test_get_unknown(self, store):
        resp = _client(MockBackend(), store).get("/api/video-title", params={"url": "v2"})
        assert resp.status_code == 200
        assert resp.json()["title"] is None

    def test_get_missing_url(self, store):
        resp = _client(MockBackend(), store).get("/api/video-title")
        assert resp.status_code == 400
        assert resp.json() == {"error": "Missing url parameter"}

    def test_set(self, store):
        client = _client(MockBackend(), store)
        resp = client.post("/api/video-title", json={"url": "v2", "title": "Heaps"})
        assert resp.status_code == 200
        assert resp.json() == {"ok": True, "url": "v2", "title": "Heaps"}
        assert store.get("v2") == "Heaps"

    @pytest.mark.parametrize("body", [{"url": "v2"}, {"title": "Heaps"}, {"url": "", "title": "Heaps"}])
    def test_set_requires_both(self, store, body):
        resp = _client(MockBackend(), store).post("/api/video-title", json=body)
        assert resp.status_code == 400
        assert resp.json() == {"error": "url and title required"}


class TestEvaluateMetric:
    """単一メトリクス評価APIのテスト"""

    def test_success(self, store):
        backend = MockBackend('{"metric": "Pacing and speed of narration", "score": 6, "feedback": "Slow down."}')
        resp = _client(backend, store).post("/api/evaluate-metric", json={
            "url": "v1",
            "videoType": "tutorial",
            "purpose": "teach X",
            "metric": "Pacing and speed of narration",
        })

        assert resp.status_code == 200
        data = resp.json()
        assert data["ok"] is True
        assert data["results"] == [
            {"metric": "Pacing and speed of narration", "score": 6, "feedback": "Slow down."},
        ]
        assert data["parsed"]["score"] == 6
        assert "Title: Binary Search" in backend.prompts[0]
        assert "Video Type: tutorial" in backend.prompts[0]

    def test_unparseable_reply(self, store):
        resp = _client(MockBackend("Looks great!"), store).post(
            "/api/evaluate-metric", json={"url": "v1", "metric": "Reasoning transparency"},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["raw"] == "Looks great!"
        assert data["parsed"] is None
        assert data["results"] == []

    @pytest.mark.parametrize("body", [{"url": "v1"}, {"metric": "Reasoning transparency"}, {}])
    def test_missing_fields(self, store, body):
        backend = MockBackend()
        resp = _client(backend, store).post("/api/evaluate-metric", json=body)
        assert resp.status_code == 400
        assert resp.json() == {"error": "Missing url or metric"}
        assert backend.prompts == []

    def test_unknown_fields_ignored(self, store):
        resp = _client(MockBackend(), store).post(
            "/api/evaluate-metric", json={"url": "v1", "metric": "A", "channel": "x"},
        )
        assert resp.status_code == 200

    @pytest.mark.parametrize("reply", [
        '{"results": [{"metric": "Reasoning transparency", "score": NaN, "feedback": "x"}]}',
        '{"metric": "Reasoning transparency", "score": Infinity, "feedback": "x"}',
        '{"metric": "Reasoning transparency", "score": 1e999}',
        '{"metric": "Reasoning transparency", "score": ' + "9" * 400 + ', "feedback": "x"}',
        "[" * 100 + "]" * 100,
        "[" * 100_000 + "]" * 100_000,
    ])
    def test_unusual_numbers_and_nesting_serialize(self, store, reply):
        """数値として表現できない値や深いネストを含む返信でも200を返す"""
        resp = _client(MockBackend(reply), store, raise_server_exceptions=False).post(
            "/api/evaluate-metric", json={"url": "v1", "metric": "Reasoning transparency"},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["ok"] is True
        assert data["results"] == []
        assert data["raw"] == reply

    def test_lone_surrogate_in_reply(self, store):
        reply = '{"metric": "Reasoning transparency", "score": 6, "feedback": "good \\ud800"}'
        resp = _client(MockBackend(reply), store, raise_server_exceptions=False).post(
            "/api/evaluate-metric", json={"url": "v1", "metric": "Reasoning transparency"},
        )
        assert resp.status_code == 200
        assert resp.json()["results"] == [
            {"metric": "Reasoning transparency", "score": 6, "feedback": "good ?"},
        ]


class TestEvaluateAll:
    def test_success(self, store):
        reply = {
            "results": [{"metric": m, "score": 8, "feedback": "ok"} for m in METRIC_CATALOG],
            "common_improvements": ["Add captions"],
        }
        backend = MockBackend(json.dumps(reply))
        resp = _client(backend, store).post("/api/evaluate-all", json={"url": "v1", "purpose": "teach X"})

        assert resp.status_code == 200
        data = resp.json()
        assert len(data["results"]) == 19
        assert data["common_improvements"] == ["Add captions"]
        assert len(backend.prompts) == 1

    def test_missing_url(self, store):
        resp = _client(MockBackend(), store).post("/api/evaluate-all", json={"purpose": "teach X"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Missing url"}


class TestErrors:
    """バックエンド障害時のレスポンステスト"""

    def test_backend_error(self, store):
        backend = MockBackend(error=BackendError("Gemini API error 503: unavailable", status_code=503))
        resp = _client(backend, store).post("/api/evaluate-all", json={"url": "v1"})
        assert resp.status_code == 500
        assert "Gemini API error 503" in resp.json()["error"]

    def test_configuration_error(self, store):
        backend = MockBackend(error=ConfigurationError("GEMINI_API_KEY is not set"))
        resp = _client(backend, store).post("/api/evaluate-all", json={"url": "v1"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "GEMINI_API_KEY is not set"}

    def test_unexpected_error(self, store):
        backend = MockBackend(error=RuntimeError("socket closed"))
        client = _client(backend, store, raise_server_exceptions=False)
        resp = client.post("/api/evaluate-all", json={"url": "v1"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "socket closed"}


class TestMisc:
    def test_metrics(self, store):
        resp = _client(MockBackend(), store).get("/api/metrics")
        assert resp.json() == {"metrics": list(METRIC_CATALOG)}

    def test_health(self, store):
        assert _client(MockBackend(), store).get("/api/health").json() == {"ok": True}

    def test_backend_closed_on_shutdown(self, store):
        backend = MockBackend()
        app = create_app(EvaluatorConfig(), backend=backend, title_store=store)
        with TestClient(app) as client:
            assert client.get("/api/health").status_code == 200
            assert backend.closed is False
        assert backend.closed is True
