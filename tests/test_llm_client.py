"""Tests for backend capabilities, JSON extraction and prompts.

Live backends are exercised with ``requests.post`` monkeypatched, so no
network access happens.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List

import pytest
import requests

from mindscan.analysis.checker import check_result
from mindscan.errors import TransportFailure
from mindscan.llm import client as client_module
from mindscan.llm.client import (
    AnthropicBackend,
    DeepSeekBackend,
    FakeBackend,
    OpenAIBackend,
    build_registry,
    parse_json_response,
)
from mindscan.llm.models import AnalysisInput, BackendRequest
from mindscan.llm.prompts import render_user_prompt, system_prompt

SAMPLE_TEXT = (
    "Knowledge grows by conjecture and refutation. We propose bold hypotheses, "
    "derive their consequences and look for observations that could prove them wrong. "
    "A theory that survives such tests is not thereby proven, only corroborated."
)


def _request(kind: str = "cognitive", feedback: str | None = None) -> BackendRequest:
    return BackendRequest(input=AnalysisInput(text=SAMPLE_TEXT, kind=kind), feedback=feedback)


class _FakeResponse:
    def __init__(self, data: Dict[str, Any], status: int = 200) -> None:
        self._data = data
        self.status_code = status

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self) -> Dict[str, Any]:
        return self._data


def test_parse_json_response_variants() -> None:
    assert parse_json_response('```json\n{"a": 1}\n```') == {"a": 1}
    assert parse_json_response('Here you go: {"a": {"b": 2}} thanks') == {"a": {"b": 2}}
    # Braces inside strings do not end the object
    assert parse_json_response('{"text": "a } brace", "n": 1} trailing') == {"text": "a } brace", "n": 1}


@pytest.mark.parametrize(
    "raw",
    [
        "no json here",
        '{"unbalanced": 1',
        "```json\n[1, 2]\n```",
        42,
        # Not JSON even though the json module accepts them by default
        '{"intelligenceScore": NaN}',
        '{"score": -Infinity}',
    ],
)
def test_parse_json_response_rejects(raw: Any) -> None:
    with pytest.raises(ValueError):
        parse_json_response(raw)


@pytest.mark.parametrize("kind", ["cognitive", "psychological"])
@pytest.mark.parametrize("backend_id", ["A", "B", "C", "D"])
def test_fake_backend_output_is_acceptable(kind: str, backend_id: str) -> None:
    """Fake backends produce results the checker accepts first time."""
    raw = FakeBackend(backend_id).analyze(_request(kind))
    payload = parse_json_response(raw)
    assert check_result(kind, payload).valid is True


def test_fake_backend_is_deterministic_and_backends_differ() -> None:
    first = FakeBackend("A").analyze(_request())
    assert FakeBackend("A").analyze(_request()) == first
    score_a = json.loads(first)["intelligenceScore"]
    score_b = json.loads(FakeBackend("B").analyze(_request()))["intelligenceScore"]
    assert score_b == score_a + 2


def test_build_registry_fake_preserves_order() -> None:
    registry = build_registry("fake", ["C", "A"])
    assert list(registry) == ["C", "A"]
    assert all(isinstance(b, FakeBackend) for b in registry.values())


def test_build_registry_rejects_unknown_mode_and_backend() -> None:
    with pytest.raises(ValueError, match="Unknown backend mode"):
        build_registry("shadow", ["A"])
    with pytest.raises(ValueError, match="Unknown backends"):
        build_registry("fake", ["A", "Q"])


def test_build_registry_live_requires_keys(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(ValueError, match="OPENAI_API_KEY"):
        build_registry("live", ["A"])
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "ak-test")
    registry = build_registry("live", ["A", "B"])
    assert isinstance(registry["A"], OpenAIBackend)
    assert isinstance(registry["B"], AnthropicBackend)


def test_live_backend_refuses_outside_live_mode(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LLM_MODE", "fake")

    def _boom(*args: Any, **kwargs: Any) -> None:
        raise AssertionError("network must not be touched")

    monkeypatch.setattr(client_module.requests, "post", _boom)
    backend = OpenAIBackend("A", api_key="sk-test")
    with pytest.raises(TransportFailure):
        backend.analyze(_request())


def test_openai_backend_sends_prompt_and_returns_content(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LLM_MODE", "live")
    calls: List[Dict[str, Any]] = []

    def _post(url: str, headers: Dict[str, str], json: Dict[str, Any], timeout: float) -> _FakeResponse:
        calls.append({"url": url, "headers": headers, "json": json})
        return _FakeResponse({"choices": [{"message": {"content": '{"ok": true}'}}]})

    monkeypatch.setattr(client_module.requests, "post", _post)
    backend = OpenAIBackend("A", api_key="sk-test")
    assert backend.analyze(_request(feedback="Missing detailed analysis")) == '{"ok": true}'
    sent = calls[0]
    assert sent["url"] == OpenAIBackend.url
    assert sent["headers"]["Authorization"] == "Bearer sk-test"
    assert sent["json"]["response_format"] == {"type": "json_object"}
    assert sent["json"]["messages"][0]["content"] == system_prompt("cognitive")
    assert "Missing detailed analysis" in sent["json"]["messages"][1]["content"]


def test_chat_backend_http_error_is_transport_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LLM_MODE", "live")
    monkeypatch.setattr(
        client_module.requests, "post", lambda *a, **k: _FakeResponse({}, status=503)
    )
    backend = DeepSeekBackend("C", api_key="ds-test")
    with pytest.raises(TransportFailure) as excinfo:
        backend.analyze(_request())
    assert excinfo.value.backend == "C"
    assert "deepseek API call failed" in excinfo.value.reason


def test_chat_backend_without_choices_fails(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LLM_MODE", "live")
    monkeypatch.setattr(client_module.requests, "post", lambda *a, **k: _FakeResponse({"choices": []}))
    with pytest.raises(TransportFailure, match="no choices"):
        DeepSeekBackend("C", api_key="ds-test").analyze(_request())


def test_anthropic_backend_joins_text_blocks(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LLM_MODE", "live")
    reply = {
        "content": [
            {"type": "text", "text": '{"a": '},
            {"type": "tool_use", "id": "x"},
            {"type": "text", "text": "1}"},
        ]
    }
    monkeypatch.setattr(client_module.requests, "post", lambda *a, **k: _FakeResponse(reply))
    backend = AnthropicBackend("B", api_key="ak-test")
    assert backend.analyze(_request("psychological")) == '{"a": 1}'


def test_user_prompt_feedback() -> None:
    assert render_user_prompt(_request()) == SAMPLE_TEXT
    prompt = render_user_prompt(_request(feedback="Missing intelligence score, Invalid strengths array"))
    assert prompt.startswith(SAMPLE_TEXT)
    assert "Missing intelligence score, Invalid strengths array" in prompt
    with pytest.raises(ValueError):
        system_prompt("astrological")
