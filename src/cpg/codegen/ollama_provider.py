# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Ollama chat provider for a local model at the end of the chain."""

import logging

import ollama

from cpg.codegen.providers import MAX_TOKENS, STOP_SEQUENCES, TEMPERATURE, Completion
from cpg.errors import AuthError, ProviderError, RateLimitError, ServerError

logger = logging.getLogger(__name__)


class OllamaProvider:
    """Generate codes using an Ollama endpoint."""

    def __init__(
        self,
        name: str,
        model_id: str,
        rate_limit_per_minute: int,
        provider_url: str,
        client: ollama.Client | None = None,
    ) -> None:
        """Initialize provider configuration.

        Args:
            name: Display name of the provider.
            model_id: Model identifier passed to Ollama.
            rate_limit_per_minute: Request budget per minute.
            provider_url: Ollama endpoint base URL.
            client: Preconfigured client, mainly for tests.
        """
        self.name = name
        self.model_id = model_id
        self.rate_limit_per_minute = rate_limit_per_minute
        self._provider_url = provider_url
        self._client = client or ollama.Client(host=provider_url)

    def complete(self, prompt: str) -> Completion:
        """Request a chat completion for one prompt.

        Raises:
            AuthError: On 401/403 responses.
            RateLimitError: On 429 responses.
            ServerError: On 5xx responses.
            ProviderError: On any other failure.
        """
        try:
            response = self._client.chat(
                model=self.model_id,
                messages=[{"role": "user", "content": prompt}],
                stream=False,
                options={
                    "temperature": TEMPERATURE,
                    "num_predict": MAX_TOKENS,
                    "stop": list(STOP_SEQUENCES),
                },
            )
        except ollama.ResponseError as exc:
            status = exc.status_code
            if status in (401, 403):
                raise AuthError(f"Authentication failed for {self.model_id}: {exc}") from exc
            if status == 429:
                raise RateLimitError(f"Rate limit exceeded for {self.model_id} (429)") from exc
            if status >= 500:
                raise ServerError(f"Server error ({status}) for {self.model_id}") from exc
            raise ProviderError(f"Ollama error {status} for {self.model_id}: {exc}") from exc
        except (ollama.RequestError, OSError, ValueError) as exc:
            logger.warning(
                f"Ollama request failed (provider_url={self._provider_url} "
                f"model={self.model_id} error={exc})"
            )
            raise ProviderError(str(exc)) from exc

        return _extract_completion(response)


def _extract_completion(response: object) -> Completion:
    """Extract completion parts from an Ollama response object or mapping."""
    if isinstance(response, dict):
        message = response.get("message") or {}
        return Completion(
            content=message.get("content") or "",
            reasoning=message.get("thinking"),
            finish_reason=response.get("done_reason"),
        )
    message = getattr(response, "message", None)
    return Completion(
        content=getattr(message, "content", None) or "",
        reasoning=getattr(message, "thinking", None),
        finish_reason=getattr(response, "done_reason", None),
    )
