# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Unit tests for provider clients and completion parsing."""

from types import SimpleNamespace

import httpx
import ollama
import openai
import pytest

from cpg.codegen.lexicon import Lexicon, LexiconEntry
from cpg.codegen.ollama_provider import OllamaProvider
from cpg.codegen.openai_provider import (
    OPENROUTER_BASE_URL,
    OpenAICompatibleProvider,
    _normalize_provider_url,
)
from cpg.codegen.providers import Completion, build_prompt, code_from_completion
from cpg.errors import AuthError, ParseError, ProviderError, RateLimitError, ServerError

_REQUEST = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")


def _status_error(error_class: type, status_code: int) -> Exception:
    response = httpx.Response(status_code=status_code, request=_REQUEST)
    return error_class(f"status {status_code}", response=response, body=None)


class FakeCompletions:
    def __init__(self, outcome: object) -> None:
        self.outcome = outcome
        self.calls: list[dict] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


def _openai_provider(outcome: object) -> tuple[OpenAICompatibleProvider, FakeCompletions]:
    completions = FakeCompletions(outcome)
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    provider = OpenAICompatibleProvider(
        name="Test Model", model_id="vendor/test:free", rate_limit_per_minute=20, client=client
    )
    return provider, completions


def _sdk_response(content: str | None, reasoning: str | None = None, finish_reason: str = "stop"):
    message = SimpleNamespace(content=content, reasoning=reasoning)
    return SimpleNamespace(choices=[SimpleNamespace(message=message, finish_reason=finish_reason)])


class FakeOllamaClient:
    def __init__(self, outcome: object) -> None:
        self.outcome = outcome
        self.calls: list[dict] = []

    def chat(self, **kwargs):
        self.calls.append(kwargs)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


def test_ph3_prov_001_openai_request_uses_generation_parameters() -> None:
    provider, completions = _openai_provider(_sdk_response("BRNG"))

    completion = provider.complete("Component: Bearing")

    assert completion == Completion(content="BRNG", reasoning=None, finish_reason="stop")
    call = completions.calls[0]
    assert call["model"] == "vendor/test:free"
    assert call["max_tokens"] == 150
    assert call["temperature"] == 0.1
    assert call["stop"] == ["\n", ".", ":", ";"]
    assert call["messages"] == [{"role": "user", "content": "Component: Bearing"}]


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (_status_error(openai.AuthenticationError, 401), AuthError),
        (_status_error(openai.PermissionDeniedError, 403), AuthError),
        (_status_error(openai.RateLimitError, 429), RateLimitError),
        (_status_error(openai.InternalServerError, 503), ServerError),
        (_status_error(openai.BadRequestError, 400), ProviderError),
        (openai.APIConnectionError(request=_REQUEST), ProviderError),
    ],
)
def test_ph3_prov_002_openai_errors_map_to_provider_errors(
    error: Exception, expected: type
) -> None:
    provider, _ = _openai_provider(error)

    with pytest.raises(expected):
        provider.complete("prompt")


def test_ph3_prov_003_openai_rate_limit_message_is_classified() -> None:
    provider, _ = _openai_provider(_status_error(openai.RateLimitError, 429))

    with pytest.raises(RateLimitError, match="429"):
        provider.complete("prompt")


def test_ph3_prov_004_openai_response_without_choices_fails() -> None:
    provider, _ = _openai_provider(SimpleNamespace(choices=[]))

    with pytest.raises(ProviderError, match="choices"):
        provider.complete("prompt")


def test_ph3_prov_005_ollama_request_and_thinking_field() -> None:
    response = {"message": {"content": "", "thinking": "For component Seal use SEAL"}, "done_reason": "stop"}
    client = FakeOllamaClient(response)
    provider = OllamaProvider(
        name="Ollama llama3", model_id="llama3", rate_limit_per_minute=60,
        provider_url="http://localhost:11434", client=client,
    )

    completion = provider.complete("Component: Seal")

    assert completion.content == ""
    assert completion.reasoning == "For component Seal use SEAL"
    assert client.calls[0]["options"]["num_predict"] == 150


@pytest.mark.parametrize(
    ("status_code", "expected"),
    [(401, AuthError), (429, RateLimitError), (500, ServerError), (404, ProviderError)],
)
def test_ph3_prov_006_ollama_status_codes_map_to_provider_errors(
    status_code: int, expected: type
) -> None:
    client = FakeOllamaClient(ollama.ResponseError("failed", status_code))
    provider = OllamaProvider(
        name="Ollama llama3", model_id="llama3", rate_limit_per_minute=60,
        provider_url="http://localhost:11434", client=client,
    )

    with pytest.raises(expected):
        provider.complete("prompt")


def test_ph3_prov_007_empty_content_uses_reasoning() -> None:
    completion = Completion(content="", reasoning="Generating code for component: DRSH")

    assert code_from_completion(completion, "Drive Shaft", "Test") == "DRSH"


def test_ph3_prov_008_empty_content_without_reasoning_fails() -> None:
    with pytest.raises(ParseError, match="Empty response"):
        code_from_completion(Completion(content="  "), "Drive Shaft", "Test")


def test_ph3_prov_009_truncated_content_without_code_names_token_limit() -> None:
    completion = Completion(content="?", finish_reason="length")

    with pytest.raises(ParseError, match="token limit"):
        code_from_completion(completion, "Drive Shaft", "Test")


def test_ph3_prov_010_prompt_lists_examples_and_first_eight_issued_codes() -> None:
    lexicon = Lexicon(entries=(LexiconEntry("Bearing", "BRNG"), LexiconEntry("Seal", "SEAL")))
    issued = [f"C{index:03d}" for index in range(10)]

    prompt = build_prompt("Drive Shaft", issued, lexicon)

    assert "Avoid: C000, C001, C002, C003, C004, C005, C006, C007\n" in prompt
    assert "C008" not in prompt
    assert "Bearing" in prompt
    assert prompt.endswith("Component: Drive Shaft\nCode:")


def test_ph3_prov_011_prompt_without_issued_codes_has_no_avoid_line() -> None:
    prompt = build_prompt("Seal", [], Lexicon(entries=()))

    assert "Avoid:" not in prompt


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("openrouter", OPENROUTER_BASE_URL),
        ("https://openrouter.ai/", OPENROUTER_BASE_URL),
        ("llm.example.com/v1/", "https://llm.example.com/v1"),
        ("http://localhost:8000/v1", "http://localhost:8000/v1"),
    ],
)
def test_ph3_prov_012_provider_url_aliases_are_normalized(raw: str, expected: str) -> None:
    assert _normalize_provider_url(raw) == expected


def test_ph3_prov_013_empty_provider_url_is_rejected() -> None:
    with pytest.raises(ValueError, match="empty"):
        _normalize_provider_url("  ")
