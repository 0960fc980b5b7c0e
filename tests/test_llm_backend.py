"""Tests for backend selection and the Ollama backend, with requests mocked."""

from unittest.mock import MagicMock, patch

import pytest
import requests

import llm_backend
from llm_backend import BackendCapacityError, OllamaBackend, detect_backend, get_backend


def _response(status: int = 200, body: dict | None = None) -> MagicMock:
    response = MagicMock()
    response.status_code = status
    response.json.return_value = body or {}
    if status >= 400:
        error = requests.exceptions.HTTPError(f"{status} error")
        error.response = response
        response.raise_for_status.side_effect = error
    return response


class TestOllamaBackend:
    def test_chat_payload(self):
        backend = OllamaBackend(model="llama3.1:8b", base_url="http://ollama:11434/")
        reply = _response(body={"message": {"role": "assistant", "content": '{"tasks": []}'}})

        with patch("llm_backend.ollama_backend.requests.post", return_value=reply) as post:
            text = backend.chat([{"role": "user", "content": "plan"}], temperature=0.2, max_tokens=256, json_mode=True)

        assert text == '{"tasks": []}'
        url = post.call_args.args[0]
        payload = post.call_args.kwargs["json"]
        assert url == "http://ollama:11434/api/chat"
        assert payload["format"] == "json"
        assert payload["stream"] is False
        assert payload["options"] == {"temperature": 0.2, "num_predict": 256}

    def test_plain_mode_has_no_format(self):
        backend = OllamaBackend()
        reply = _response(body={"message": {"content": "Copy."}})
        with patch("llm_backend.ollama_backend.requests.post", return_value=reply) as post:
            backend.chat([{"role": "user", "content": "hi"}])
        assert "format" not in post.call_args.kwargs["json"]

    @pytest.mark.parametrize(
        "side_effect, expected",
        [
            (requests.exceptions.ConnectionError("refused"), ConnectionError),
            (requests.exceptions.Timeout("slow"), TimeoutError),
        ],
    )
    def test_transport_errors(self, side_effect, expected):
        with patch("llm_backend.ollama_backend.requests.post", side_effect=side_effect):
            with pytest.raises(expected):
                OllamaBackend().chat([{"role": "user", "content": "hi"}])

    @pytest.mark.parametrize("status, expected", [(429, BackendCapacityError), (503, BackendCapacityError), (500, RuntimeError)])
    def test_http_errors(self, status, expected):
        with patch("llm_backend.ollama_backend.requests.post", return_value=_response(status)):
            with pytest.raises(expected):
                OllamaBackend().chat([{"role": "user", "content": "hi"}])

    def test_unexpected_body(self):
        with patch("llm_backend.ollama_backend.requests.post", return_value=_response(body={"done": True})):
            with pytest.raises(RuntimeError, match="Unexpected"):
                OllamaBackend().chat([{"role": "user", "content": "hi"}])

    @pytest.mark.asyncio
    async def test_achat_runs_chat(self):
        reply = _response(body={"message": {"content": "Roger."}})
        with patch("llm_backend.ollama_backend.requests.post", return_value=reply):
            assert await OllamaBackend().achat([{"role": "user", "content": "hi"}], json_mode=True) == "Roger."

    def test_list_models_and_availability(self):
        tags = _response(body={"models": [{"name": "llama3.1:8b"}, {"name": "qwen2.5:7b"}]})
        with patch("llm_backend.ollama_backend.requests.get", return_value=tags):
            backend = OllamaBackend()
            assert backend.list_models() == ["llama3.1:8b", "qwen2.5:7b"]
            assert backend.is_available()

        with patch("llm_backend.ollama_backend.requests.get", side_effect=requests.exceptions.ConnectionError()):
            assert not OllamaBackend().is_available()


class TestBackendSelection:
    @pytest.fixture(autouse=True)
    def no_keys(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        monkeypatch.setattr(llm_backend, "_lmstudio_running", lambda *args, **kwargs: False)

    def test_detect_prefers_anthropic(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")
        assert detect_backend() == "anthropic"

    def test_detect_openai(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        assert detect_backend() == "openai"

    def test_detect_lmstudio(self, monkeypatch):
        monkeypatch.setattr(llm_backend, "_lmstudio_running", lambda *args, **kwargs: True)
        assert detect_backend() == "lmstudio"

    def test_detect_falls_back_to_ollama(self):
        assert detect_backend() == "ollama"

    def test_auto_builds_ollama(self):
        backend = get_backend("auto", model="qwen2.5:7b", timeout=30)
        assert isinstance(backend, OllamaBackend)
        assert backend.model == "qwen2.5:7b"
        assert backend.timeout == 30

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown LLM backend"):
            get_backend("carrier-pigeon")
