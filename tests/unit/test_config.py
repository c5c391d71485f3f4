# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
from pathlib import Path

import pytest

from cpg.config import DEFAULT_PROVIDERS, ChainSettings, load_settings


def test_ph0_cfg_001_defaults_without_environment() -> None:
    settings = load_settings({})

    assert settings.db_path == Path("cpg.sqlite")
    assert settings.provider_url == "openrouter"
    assert settings.api_key is None
    assert settings.providers == DEFAULT_PROVIDERS
    assert [spec.rate_limit_per_minute for spec in settings.providers] == [30, 25, 25, 20, 20, 10]


def test_ph0_cfg_002_environment_overrides() -> None:
    settings = load_settings(
        {
            "CPG_DB_PATH": "/data/catalog.sqlite",
            "CPG_PROVIDER_URL": "http://localhost:8000/v1",
            "OPENROUTER_API_KEY": "sk-test",
        }
    )

    assert settings.db_path == Path("/data/catalog.sqlite")
    assert settings.provider_url == "http://localhost:8000/v1"
    assert settings.api_key == "sk-test"


def test_ph0_cfg_003_ollama_model_is_appended_to_chain() -> None:
    settings = load_settings({"CPG_OLLAMA_MODEL": "llama3.2", "CPG_OLLAMA_RATE_LIMIT": "12"})

    local = settings.providers[-1]
    assert len(settings.providers) == len(DEFAULT_PROVIDERS) + 1
    assert (local.kind, local.model_id, local.rate_limit_per_minute) == ("ollama", "llama3.2", 12)


@pytest.mark.parametrize("raw_limit", ["0", "-3", "fast"])
def test_ph0_cfg_004_invalid_ollama_rate_limit_is_rejected(raw_limit: str) -> None:
    with pytest.raises(ValueError, match="CPG_OLLAMA_RATE_LIMIT"):
        load_settings({"CPG_OLLAMA_MODEL": "llama3.2", "CPG_OLLAMA_RATE_LIMIT": raw_limit})


def test_ph0_cfg_005_backoff_doubles_up_to_cap() -> None:
    chain = ChainSettings(max_backoff_seconds=5.0)

    assert [chain.backoff(attempt) for attempt in range(1, 6)] == [1.0, 2.0, 4.0, 5.0, 5.0]
