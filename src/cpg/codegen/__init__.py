# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Component code generation for the catalog profile generator."""

from cpg.codegen.health import HealthPolicy, ProviderHealthRegistry
from cpg.codegen.lexicon import COMPONENT_LEXICON, Lexicon, LexiconEntry
from cpg.codegen.ollama_provider import OllamaProvider
from cpg.codegen.openai_provider import OpenAICompatibleProvider
from cpg.codegen.orchestrator import ComponentCodeOrchestrator, ProbeResult, ProviderStatus
from cpg.codegen.providers import Completion, Provider

__all__ = [
    "COMPONENT_LEXICON",
    "ComponentCodeOrchestrator",
    "Completion",
    "HealthPolicy",
    "Lexicon",
    "LexiconEntry",
    "OllamaProvider",
    "OpenAICompatibleProvider",
    "ProbeResult",
    "Provider",
    "ProviderHealthRegistry",
    "ProviderStatus",
]
