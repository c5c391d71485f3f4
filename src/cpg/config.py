# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Runtime configuration for the catalog pipeline."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, Mapping

logger = logging.getLogger(__name__)

ProviderKind = Literal["openai", "ollama"]

DEFAULT_DB_PATH: str = "cpg.sqlite"
DEFAULT_PROVIDER_URL: str = "openrouter"
DEFAULT_OLLAMA_HOST: str = "http://localhost:11434"
API_KEY_ENV: str = "OPENROUTER_API_KEY"


@dataclass(frozen=True)
class ProviderSpec:
    """Describe one provider in the generation chain.

    Attributes:
        name: Display name.
        model_id: Model identifier sent to the endpoint.
        rate_limit_per_minute: Published per-minute request limit.
        kind: Client implementation to use.
    """

    name: str
    model_id: str
    rate_limit_per_minute: int
    kind: ProviderKind = "openai"


DEFAULT_PROVIDERS: tuple[ProviderSpec, ...] = (
    ProviderSpec("Google Gemini 2.0 Flash", "google/gemini-2.0-flash-exp:free", 30),
    ProviderSpec("DeepSeek R1", "deepseek/deepseek-r1:free", 25),
    ProviderSpec("Llama 3.3 70B", "meta-llama/llama-3.3-70b-instruct:free", 25),
    ProviderSpec("Phi-4", "microsoft/phi-4:free", 20),
    ProviderSpec("Qwen 2.5 72B", "qwen/qwen-2.5-72b-instruct:free", 20),
    ProviderSpec("Tencent Hunyuan A13B", "tencent/hunyuan-a13b-instruct:free", 10),
)


@dataclass(frozen=True)
class ChainSettings:
    """Describe retry and wait behaviour of the provider chain, in seconds.

    Attributes:
        max_attempts: Attempts per provider call.
        initial_backoff_seconds: Backoff after the first rate-limited attempt.
        max_backoff_seconds: Backoff cap.
        max_wait_seconds: Longest wait accepted for a rate-limited provider.
        wait_buffer_seconds: Extra sleep added to every wait.
    """

    max_attempts: int = 3
    initial_backoff_seconds: float = 1.0
    max_backoff_seconds: float = 30.0
    max_wait_seconds: float = 15.0
    wait_buffer_seconds: float = 1.0

    def backoff(self, attempt: int) -> float:
        """Return the backoff after a failed one-based attempt."""
        return min(
            self.initial_backoff_seconds * (2 ** (attempt - 1)),
            self.max_backoff_seconds,
        )


@dataclass(frozen=True)
class Settings:
    """Top-level settings.

    Attributes:
        db_path: SQLite file holding libraries and sessions.
        provider_url: OpenAI-compatible endpoint base URL or alias.
        api_key: Provider API key.
        ollama_host: Ollama endpoint base URL.
        providers: Ordered provider chain.
        chain: Retry and wait behaviour.
    """

    db_path: Path = Path(DEFAULT_DB_PATH)
    provider_url: str = DEFAULT_PROVIDER_URL
    api_key: str | None = None
    ollama_host: str = DEFAULT_OLLAMA_HOST
    providers: tuple[ProviderSpec, ...] = DEFAULT_PROVIDERS
    chain: ChainSettings = field(default_factory=ChainSettings)


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Read settings from environment variables.

    Recognized variables: ``CPG_DB_PATH``, ``CPG_PROVIDER_URL``,
    ``OPENROUTER_API_KEY``, ``CPG_OLLAMA_HOST`` and ``CPG_OLLAMA_MODEL``. When
    ``CPG_OLLAMA_MODEL`` is set, a local Ollama provider is appended to the
    chain.

    Args:
        environ: Environment mapping; defaults to ``os.environ``.

    Returns:
        Loaded settings.

    Raises:
        ValueError: If ``CPG_OLLAMA_RATE_LIMIT`` is not a positive integer.
    """
    env = os.environ if environ is None else environ
    providers = DEFAULT_PROVIDERS
    ollama_model = env.get("CPG_OLLAMA_MODEL", "").strip()
    if ollama_model:
        raw_limit = env.get("CPG_OLLAMA_RATE_LIMIT", "60").strip()
        if not raw_limit.isdigit() or int(raw_limit) <= 0:
            raise ValueError(
                f"CPG_OLLAMA_RATE_LIMIT must be a positive integer, got {raw_limit!r}."
            )
        providers = providers + (
            ProviderSpec(
                name=f"Ollama {ollama_model}",
                model_id=ollama_model,
                rate_limit_per_minute=int(raw_limit),
                kind="ollama",
            ),
        )
    settings = Settings(
        db_path=Path(env.get("CPG_DB_PATH", DEFAULT_DB_PATH)),
        provider_url=env.get("CPG_PROVIDER_URL", DEFAULT_PROVIDER_URL),
        api_key=env.get(API_KEY_ENV) or None,
        ollama_host=env.get("CPG_OLLAMA_HOST", DEFAULT_OLLAMA_HOST),
        providers=providers,
    )
    if settings.api_key is None:
        logger.info(f"No provider API key configured (env={API_KEY_ENV})")
    return settings
