# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Provider abstractions for component code generation."""

import logging
from dataclasses import dataclass
from typing import Collection, Protocol

from cpg.codegen.extraction import extract_code
from cpg.codegen.lexicon import Lexicon
from cpg.errors import ParseError

logger = logging.getLogger(__name__)

MAX_TOKENS: int = 150
TEMPERATURE: float = 0.1
STOP_SEQUENCES: tuple[str, ...] = ("\n", ".", ":", ";")


@dataclass(frozen=True)
class Completion:
    """Represent the parts of a chat completion used for extraction.

    Attributes:
        content: Primary message text.
        reasoning: Separate reasoning text some models return.
        finish_reason: Provider finish reason, e.g. ``stop`` or ``length``.
    """

    content: str
    reasoning: str | None = None
    finish_reason: str | None = None


class Provider(Protocol):
    """Define a text-generation provider in the code generation chain."""

    name: str
    model_id: str
    rate_limit_per_minute: int

    def complete(self, prompt: str) -> Completion:
        """Send one prompt and return the completion.

        Args:
            prompt: Full generation prompt.

        Returns:
            Parsed completion parts.

        Raises:
            AuthError: On HTTP 401/403.
            RateLimitError: On HTTP 429.
            ServerError: On HTTP 5xx.
            ProviderError: On any other transport or protocol failure.
        """


def build_prompt(
    component_name: str, issued_codes: Collection[str], lexicon: Lexicon
) -> str:
    """Create the code generation prompt.

    Args:
        component_name: Component to encode.
        issued_codes: Codes already handed out; the first eight are listed.
        lexicon: Source of few-shot examples.

    Returns:
        Prompt text.
    """
    examples = "\n".join(lexicon.examples(limit=8))
    issued = list(issued_codes)
    avoid = f"\nAvoid: {', '.join(issued[:8])}" if issued else ""
    return (
        "Generate a 4-character SAP component code.\n\n"
        "Rules:\n"
        "- Exactly 4 characters (letters preferred)\n"
        "- Use meaningful abbreviations\n"
        f'- 3-char names get "0" suffix (ARM -> ARM0){avoid}\n\n'
        "Examples:\n"
        f"{examples}\n\n"
        f"Component: {component_name}\n"
        "Code:"
    )


def code_from_completion(
    completion: Completion, component_name: str, provider_name: str
) -> str:
    """Extract the code from a completion.

    Empty content falls back to the reasoning text. Content cut short by the
    token limit is still searched before giving up.

    Args:
        completion: Provider completion.
        component_name: Component the code is generated for.
        provider_name: Provider name used in error messages.

    Returns:
        Extracted four-character code.

    Raises:
        ParseError: If no valid code can be extracted.
    """
    content = (completion.content or "").strip()
    if not content:
        reasoning = (completion.reasoning or "").strip()
        if reasoning:
            code = extract_code(reasoning, component_name)
            if code:
                logger.info(
                    f"Code extracted from reasoning (provider={provider_name} code={code})"
                )
                return code
        raise ParseError(
            f"Empty response from {provider_name} "
            f"(finish_reason={completion.finish_reason} reasoning={bool(reasoning)})"
        )

    code = extract_code(content, component_name)
    if code:
        return code
    if completion.finish_reason == "length":
        raise ParseError(
            f"{provider_name} hit the token limit and the partial response has no code"
        )
    raise ParseError(f"{provider_name} response has no valid code: {content[:50]!r}")
