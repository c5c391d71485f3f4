# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""OpenAI-compatible chat completion provider (OpenRouter by default)."""

import logging
from urllib.parse import urlparse

from openai import (
    APIConnectionError,
    APIStatusError,
    AuthenticationError,
    BadRequestError,
    InternalServerError,
    OpenAI,
    OpenAIError,
    PermissionDeniedError,
)
from openai import RateLimitError as OpenAIRateLimitError

from cpg.codegen.providers import MAX_TOKENS, STOP_SEQUENCES, TEMPERATURE, Completion
from cpg.errors import AuthError, ProviderError, RateLimitError, ServerError

logger = logging.getLogger(__name__)

OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
APP_TITLE: str = "SAP Catalog Profile Generator"


class OpenAICompatibleProvider:
    """Generate codes through an OpenAI-compatible chat completions endpoint."""

    def __init__(
        self,
        name: str,
        model_id: str,
        rate_limit_per_minute: int,
        provider_url: str = OPENROUTER_BASE_URL,
        api_key: str | None = None,
        client: OpenAI | None = None,
    ) -> None:
        """Initialize provider configuration.

        Args:
            name: Display name of the provider.
            model_id: Model identifier sent with every request.
            rate_limit_per_minute: Published per-minute request limit.
            provider_url: Endpoint base URL or alias such as ``openrouter``.
            api_key: API key; the SDK reads its environment when omitted.
            client: Preconfigured SDK client, mainly for tests.
        """
        self.name = name
        self.model_id = model_id
        self.rate_limit_per_minute = rate_limit_per_minute
        self._provider_url = provider_url
        self._api_key = api_key
        self._client = client

    def complete(self, prompt: str) -> Completion:
        """Request a completion for one prompt.

        Args:
            prompt: Full generation prompt.

        Returns:
            Completion parts of the first choice.

        Raises:
            AuthError: On 401/403 responses.
            RateLimitError: On 429 responses.
            ServerError: On 5xx responses.
            ProviderError: On any other failure.
        """
        client = self._get_client()
        try:
            response = client.chat.completions.create(
                model=self.model_id,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=MAX_TOKENS,
                temperature=TEMPERATURE,
                stream=False,
                stop=list(STOP_SEQUENCES),
                extra_headers={"X-Title": APP_TITLE},
            )
        except (AuthenticationError, PermissionDeniedError) as exc:
            logger.warning(
                f"Provider rejected credentials (provider={self.name} "
                f"model={self.model_id} status={exc.status_code})"
            )
            raise AuthError(f"Authentication failed for {self.model_id}: {exc}") from exc
        except OpenAIRateLimitError as exc:
            raise RateLimitError(f"Rate limit exceeded for {self.model_id} (429)") from exc
        except InternalServerError as exc:
            raise ServerError(
                f"Server error ({exc.status_code}) for {self.model_id}"
            ) from exc
        except BadRequestError as exc:
            raise ProviderError(f"Bad request for {self.model_id}: {exc}") from exc
        except APIStatusError as exc:
            if exc.status_code >= 500:
                raise ServerError(
                    f"Server error ({exc.status_code}) for {self.model_id}"
                ) from exc
            raise ProviderError(
                f"API error {exc.status_code} for {self.model_id}: {exc}"
            ) from exc
        except (APIConnectionError, OpenAIError, OSError, ValueError) as exc:
            logger.warning(
                f"Provider request failed (provider={self.name} "
                f"provider_url={self._provider_url} error={exc})"
            )
            raise ProviderError(str(exc)) from exc

        return _extract_completion(response)

    def _get_client(self) -> OpenAI:
        """Get or initialize the SDK client.

        SDK retries are disabled; the orchestrator owns retry policy.

        Raises:
            ProviderError: If client initialization fails.
        """
        if self._client is not None:
            return self._client
        try:
            self._client = OpenAI(
                base_url=_normalize_provider_url(self._provider_url),
                api_key=self._api_key,
                max_retries=0,
            )
        except (OpenAIError, OSError, ValueError) as exc:
            logger.warning(
                f"OpenAI client initialization failed (provider_url={self._provider_url} "
                f"model={self.model_id} error={exc})"
            )
            raise ProviderError(str(exc)) from exc
        return self._client


def _normalize_provider_url(provider_url: str) -> str:
    """Normalize a provider URL or alias to an API base URL.

    Args:
        provider_url: User-provided provider URL or alias.

    Returns:
        Normalized base URL.

    Raises:
        ValueError: If the provider URL is invalid.
    """
    normalized_raw = provider_url.strip()
    if not normalized_raw:
        raise ValueError("Invalid provider URL: value is empty.")

    lowered_raw = normalized_raw.lower().rstrip("/")
    if lowered_raw in {"openrouter", "openrouter.ai", "www.openrouter.ai"}:
        return OPENROUTER_BASE_URL

    candidate = normalized_raw
    if "://" not in candidate:
        candidate = f"https://{candidate}"

    parsed = urlparse(candidate)
    if not parsed.scheme or not parsed.netloc:
        raise ValueError(
            f"Invalid provider URL: expected host URL, got '{provider_url}'."
        )
    if parsed.netloc.lower() in {"openrouter.ai", "www.openrouter.ai"} and not parsed.path.strip("/"):
        return OPENROUTER_BASE_URL
    return candidate.rstrip("/")


def _extract_completion(response: object) -> Completion:
    """Extract completion parts from an SDK response or a plain mapping.

    Raises:
        ProviderError: If the response has no choices.
    """
    if isinstance(response, dict):
        choices = response.get("choices") or []
        if not choices:
            raise ProviderError("Response does not contain choices.")
        choice = choices[0]
        message = choice.get("message") or {}
        return Completion(
            content=message.get("content") or "",
            reasoning=message.get("reasoning"),
            finish_reason=choice.get("finish_reason"),
        )
    choices = getattr(response, "choices", None) or []
    if not choices:
        raise ProviderError("Response does not contain choices.")
    choice = choices[0]
    message = getattr(choice, "message", None)
    return Completion(
        content=getattr(message, "content", None) or "",
        reasoning=getattr(message, "reasoning", None),
        finish_reason=getattr(choice, "finish_reason", None),
    )
