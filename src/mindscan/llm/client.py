"""Backend capability abstraction for MINDSCAN.

This module defines the protocol every analysis backend implements and
provides a helper to pull a JSON object out of raw model output.  A
deterministic ``FakeBackend`` is implemented for offline use and does
not perform any network calls.  Live backends talk to the vendor REST
APIs with :mod:`requests` and are only allowed to do so when
``LLM_MODE=live``.

Every failure of a live backend (network error, HTTP error, missing
content) is raised as :class:`~mindscan.errors.TransportFailure`.
Backends never retry on their own; retries driven by the acceptability
contract are the invoker's job.
"""

from __future__ import annotations

import json
import os
import re
from typing import Any, Dict, Iterable, List, Optional, Protocol

import requests

from ..config import BACKEND_TIMEOUT_SECONDS
from ..errors import TransportFailure
from .models import (
    BackendRequest,
    CognitiveResult,
    EmotionalProfile,
    InterpersonalDynamics,
    MotivationalStructure,
    PsychologicalResult,
)
from .policy import BACKEND_VENDORS, VENDOR_API_KEYS, validate_backends
from .prompts import render_user_prompt, system_prompt


class BackendCapability(Protocol):
    """Protocol for analysis backends.

    Concrete implementations provide an ``analyze`` method accepting a
    :class:`BackendRequest` and returning the raw textual response of
    the model.  ``analyze`` may be a plain method (it is then run in a
    worker thread) or a coroutine function (it is then awaited directly
    and can be cancelled mid-call).
    """

    def analyze(self, request: BackendRequest) -> str:
        raise NotImplementedError


def _reject_constant(name: str) -> Any:
    raise ValueError(f"{name} is not a valid JSON number")


def parse_json_response(text: Any) -> Dict[str, Any]:
    """Extract a JSON object from a raw model response.

    The response may contain fenced code blocks (````json ... ```), or
    mixed prose and JSON.  This helper attempts to locate the first
    top-level JSON object by balancing braces.  Raises ``ValueError``
    when no object can be recovered.
    """
    if not isinstance(text, str):
        raise ValueError("Model response must be a string")
    fenced_match = re.search(r"```(?:json)?\s*(\{.*?\})\s*```", text, re.DOTALL)
    if fenced_match:
        candidate = fenced_match.group(1)
    else:
        start = text.find("{")
        if start == -1:
            raise ValueError("No JSON object found in response")
        depth = 0
        in_string = False
        escaped = False
        end = None
        for idx in range(start, len(text)):
            ch = text[idx]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    end = idx + 1
                    break
        if end is None:
            raise ValueError("Unbalanced JSON in response")
        candidate = text[start:end]
    try:
        data = json.loads(candidate, parse_constant=_reject_constant)
    except Exception as exc:
        raise ValueError(f"Failed to parse JSON: {exc}")
    if not isinstance(data, dict):
        raise ValueError("Response JSON is not an object")
    return data


class FakeBackend:
    """Deterministic fake backend for offline use and testing.

    The fake derives a profile from simple surface statistics of the
    text (word length, sentence length, vocabulary spread).  Each
    backend identifier applies a small fixed offset to the scalar
    metrics so that the fake providers disagree slightly, as real ones
    do.  It never accesses network or file resources.
    """

    _OFFSETS: Dict[str, int] = {"A": 0, "B": 2, "C": -1, "D": 1}

    def __init__(self, backend_id: str) -> None:
        self.backend_id = backend_id

    def analyze(self, request: BackendRequest) -> str:
        stats = _text_stats(request.input.text)
        if request.input.kind == "psychological":
            return self._psychological(stats).model_dump_json()
        return self._cognitive(stats).model_dump_json()

    def _score(self, base: int, stats: Dict[str, float]) -> int:
        score = base
        if stats["avg_word_len"] > 5:
            score += 4
        if stats["avg_word_len"] > 6:
            score += 3
        if stats["avg_sentence_len"] > 15:
            score += 3
        if stats["avg_sentence_len"] > 25:
            score += 2
        if stats["words"] > 200:
            score += 2
        if stats["lexical_spread"] > 0.6:
            score += 2
        score += self._OFFSETS.get(self.backend_id, 0)
        return max(1, min(99, score))

    def _cognitive(self, stats: Dict[str, float]) -> CognitiveResult:
        score = self._score(72, stats)
        characteristics = ["analytical", "systematic"]
        if stats["avg_sentence_len"] > 20:
            characteristics.append("sustains long inferential chains")
        else:
            characteristics.append("favours compact statements")
        if stats["lexical_spread"] > 0.6:
            characteristics.append("broad working vocabulary")
        else:
            characteristics.append("returns to a core set of terms")
        return CognitiveResult(
            intelligenceScore=score,
            characteristics=characteristics,
            detailedAnalysis=(
                f"The author writes {int(stats['words'])} words across "
                f"{int(stats['sentences'])} sentences, averaging "
                f"{stats['avg_sentence_len']:.1f} words per sentence. "
                "Ideas are introduced in sequence and connected with explicit "
                "logical markers, which suggests deliberate control over the "
                "structure of the argument."
            ),
            strengths=["logical coherence", "structured thinking", "precision"],
            tendencies=["methodical progression", "preference for explicit structure"],
        )

    def _psychological(self, stats: Dict[str, float]) -> PsychologicalResult:
        stability = self._score(60, stats)
        return PsychologicalResult(
            emotionalProfile=EmotionalProfile(
                primaryEmotions=["calm", "curious", "focused"],
                emotionalStability=stability,
                detailedAnalysis=(
                    "Emotional expression is measured; affect is present but "
                    "subordinated to the line of argument."
                ),
            ),
            motivationalStructure=MotivationalStructure(
                primaryDrives=["understanding", "accuracy", "competence"],
                motivationalPatterns=["systematic investigation", "thorough analysis"],
                detailedAnalysis=(
                    "The writing is driven by a wish to get things right rather "
                    "than to persuade."
                ),
            ),
            interpersonalDynamics=InterpersonalDynamics(
                attachmentStyle="secure and autonomous",
                socialOrientations=["independent", "collaborative"],
                relationshipPatterns=["professional boundaries", "mutual respect"],
                detailedAnalysis=(
                    "The author addresses the reader as a peer and keeps a "
                    "respectful distance."
                ),
            ),
            strengths=["analytical thinking", "emotional stability", "clear communication"],
            challenges=["potential over-analysis", "may appear detached"],
            overallSummary=(
                "A balanced, methodical profile with stable affect and an "
                "independent, collaborative interpersonal stance."
            ),
        )


def _text_stats(text: str) -> Dict[str, float]:
    words = text.split()
    n_words = max(len(words), 1)
    sentences = [s for s in re.split(r"[.!?]+", text) if s.strip()]
    n_sentences = max(len(sentences), 1)
    letters = sum(len(w) for w in words)
    unique = len({w.lower().strip(".,;:!?\"'()") for w in words})
    return {
        "words": float(len(words)),
        "sentences": float(n_sentences),
        "avg_word_len": letters / n_words,
        "avg_sentence_len": n_words / n_sentences,
        "lexical_spread": unique / n_words,
    }


def _require_live(backend_id: str) -> None:
    # Guard against accidental invocation outside live mode
    if os.getenv("LLM_MODE", "fake").lower() != "live":
        raise TransportFailure(backend_id, "live backend called when LLM_MODE is not 'live'")


class ChatCompletionsBackend:
    """Backend speaking the OpenAI-style chat completions protocol.

    OpenAI, DeepSeek and Perplexity all accept the same request and
    response shape; subclasses only set the endpoint, default model and
    the environment variable holding the API key.
    """

    url: str = ""
    default_model: str = ""
    vendor: str = ""

    def __init__(
        self,
        backend_id: str,
        *,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: float = BACKEND_TIMEOUT_SECONDS,
    ) -> None:
        self.backend_id = backend_id
        self.api_key = api_key or os.getenv(VENDOR_API_KEYS[self.vendor])
        self.model = model or self.default_model
        self.timeout = timeout
        if not self.api_key:
            raise ValueError(
                f"{VENDOR_API_KEYS[self.vendor]} environment variable must be set for {type(self).__name__}"
            )

    def _payload(self, request: BackendRequest) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt(request.input.kind)},
                {"role": "user", "content": render_user_prompt(request)},
            ],
            "temperature": 0.7,
            "max_tokens": 2000,
        }

    def analyze(self, request: BackendRequest) -> str:
        """Perform one chat completion request and return the message content.

        Raises:
            TransportFailure: On non-live mode, HTTP errors or a response
                without content.
        """
        _require_live(self.backend_id)
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            resp = requests.post(
                self.url,
                headers=headers,
                json=self._payload(request),
                timeout=self.timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except Exception as exc:
            raise TransportFailure(self.backend_id, f"{self.vendor} API call failed: {exc}")
        choices = data.get("choices") or []
        if not choices:
            raise TransportFailure(self.backend_id, f"{self.vendor} API returned no choices")
        content = (choices[0].get("message") or {}).get("content")
        if not content:
            raise TransportFailure(self.backend_id, f"{self.vendor} API response missing content")
        return content


class OpenAIBackend(ChatCompletionsBackend):
    url = "https://api.openai.com/v1/chat/completions"
    default_model = "gpt-4o"
    vendor = "openai"

    def _payload(self, request: BackendRequest) -> Dict[str, Any]:
        payload = super()._payload(request)
        payload["response_format"] = {"type": "json_object"}
        return payload


class DeepSeekBackend(ChatCompletionsBackend):
    url = "https://api.deepseek.com/v1/chat/completions"
    default_model = "deepseek-chat"
    vendor = "deepseek"


class PerplexityBackend(ChatCompletionsBackend):
    url = "https://api.perplexity.ai/chat/completions"
    default_model = "sonar"
    vendor = "perplexity"


class AnthropicBackend:
    """Backend for Anthropic's Messages API."""

    url = "https://api.anthropic.com/v1/messages"
    api_version = "2023-06-01"

    def __init__(
        self,
        backend_id: str,
        *,
        api_key: Optional[str] = None,
        model: str = "claude-3-7-sonnet-20250219",
        timeout: float = BACKEND_TIMEOUT_SECONDS,
    ) -> None:
        self.backend_id = backend_id
        self.api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        self.model = model
        self.timeout = timeout
        if not self.api_key:
            raise ValueError("ANTHROPIC_API_KEY environment variable must be set for AnthropicBackend")

    def analyze(self, request: BackendRequest) -> str:
        _require_live(self.backend_id)
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": self.api_version,
            "content-type": "application/json",
        }
        payload = {
            "model": self.model,
            "max_tokens": 2000,
            "system": system_prompt(request.input.kind),
            "messages": [{"role": "user", "content": render_user_prompt(request)}],
        }
        try:
            resp = requests.post(self.url, headers=headers, json=payload, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except Exception as exc:
            raise TransportFailure(self.backend_id, f"anthropic API call failed: {exc}")
        # Concatenate the text blocks of the reply
        parts = [block.get("text", "") for block in data.get("content") or [] if block.get("type") == "text"]
        content = "".join(parts)
        if not content:
            raise TransportFailure(self.backend_id, "anthropic API response missing content")
        return content


_LIVE_BACKENDS = {
    "openai": OpenAIBackend,
    "anthropic": AnthropicBackend,
    "deepseek": DeepSeekBackend,
    "perplexity": PerplexityBackend,
}


def build_registry(mode: str, backends: Iterable[str]) -> Dict[str, BackendCapability]:
    """Build the ordered registry mapping backend identifier to capability.

    Args:
        mode: ``fake`` for deterministic offline backends, ``live`` for
            vendor HTTP clients.
        backends: Backend identifiers to include, in dispatch order.

    Returns:
        A dict preserving the order of ``backends``.

    Raises:
        ValueError: On an unknown mode or backend identifier, or when a
            live backend's API key is missing.
    """
    selected: List[str] = validate_backends(backends)
    mode = (mode or "fake").lower()
    registry: Dict[str, BackendCapability] = {}
    for backend_id in selected:
        if mode == "fake":
            registry[backend_id] = FakeBackend(backend_id)
        elif mode == "live":
            registry[backend_id] = _LIVE_BACKENDS[BACKEND_VENDORS[backend_id]](backend_id)
        else:
            raise ValueError(f"Unknown backend mode: {mode}")
    return registry
