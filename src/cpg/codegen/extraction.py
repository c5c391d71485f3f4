# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Extract a four-character component code from free-form provider text.

Rules run in a fixed order. The structural rules come first and are the
strictest; the keyword rules and the final scans accept progressively looser
text. Every candidate must pass ``is_valid_code``.
"""

import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

STOP_WORDS: frozenset[str] = frozenset(
    {
        "WORD", "CODE", "CHAR", "TEXT", "NAME", "THIS", "THAT", "WITH", "FROM",
        "WILL", "HAVE", "BEEN", "THEY", "THEM", "WHAT", "WHEN", "WHERE", "WHICH",
        "WOULD", "COULD", "SHOULD",
    }
)


@dataclass(frozen=True)
class ExtractionRule:
    """Represent one named extraction pattern.

    Attributes:
        name: Rule description used in logs.
        pattern: Compiled pattern; group 1 holds the candidate code.
        reject_stop_words: Whether common English words are refused.
    """

    name: str
    pattern: re.Pattern[str]
    reject_stop_words: bool = False

    def apply(self, text: str) -> str | None:
        """Return the first candidate matched by this rule."""
        match = self.pattern.search(text)
        if match is None:
            return None
        candidate = match.group(1)
        if self.reject_stop_words and candidate in STOP_WORDS:
            return None
        return candidate


STRUCTURAL_RULES: tuple[ExtractionRule, ...] = (
    ExtractionRule("4 letters", re.compile(r"\b([A-Z]{4})\b"), True),
    ExtractionRule("3 letters + 1 number", re.compile(r"\b([A-Z]{3}[0-9])\b"), True),
    ExtractionRule("2 letters + 2 numbers", re.compile(r"\b([A-Z]{2}[0-9]{2})\b"), True),
    ExtractionRule("1 letter + 3 numbers", re.compile(r"\b([A-Z][0-9]{3})\b"), True),
    ExtractionRule("any 4 alphanumeric", re.compile(r"\b([A-Z0-9]{4})\b"), True),
)

KEYWORD_RULES: tuple[ExtractionRule, ...] = (
    ExtractionRule(
        "after keywords",
        re.compile(
            r"(?:CODE|RESULT|ANSWER|OUTPUT|GENERATE[SD]?)[\s:]*[\"']?([A-Z0-9]{4})[\"']?",
            re.IGNORECASE,
        ),
    ),
    ExtractionRule("standalone on line", re.compile(r"^([A-Z0-9]{4})$", re.MULTILINE)),
    ExtractionRule("after arrow", re.compile(r"(?:->|→)\s*([A-Z0-9]{4})")),
    ExtractionRule("after is", re.compile(r"IS\s+([A-Z0-9]{4})", re.IGNORECASE)),
    ExtractionRule("after colon", re.compile(r":\s*([A-Z0-9]{4})")),
    ExtractionRule("in quotes", re.compile(r"[\"']([A-Z0-9]{4})[\"']")),
    ExtractionRule(
        "end of line", re.compile(r"\b([A-Z0-9]{4})\b(?=\s*$)", re.MULTILINE)
    ),
)

_ANY_FOUR = re.compile(r"[A-Z0-9]{4}")
_REASONING_CONTEXT = re.compile(r"(?:COMPONENT|GENERATING|FOR)[\s\S]*?([A-Z0-9]{4})")


def is_valid_code(code: str, component_name: str) -> bool:
    """Check whether a candidate looks like a code for the component.

    Args:
        code: Upper-case candidate.
        component_name: Component the code is generated for.

    Returns:
        True when the candidate has four characters, at least one letter, is
        not all digits, and either relates to the first two letters of the
        component name or has at least two distinct characters.
    """
    if len(code) != 4:
        return False
    if not re.search(r"[A-Z]", code):
        return False
    if code.isdigit():
        return False
    letters = re.sub(r"[^A-Z]", "", component_name.upper())
    if len(letters) >= 2:
        first_two = letters[:2]
        if (
            first_two[0] == code[0]
            or first_two[1] == code[1]
            or code[0] in first_two
        ):
            return True
    return len(set(code)) >= 2


def extract_code(response: str, component_name: str) -> str | None:
    """Extract the first valid code from provider text.

    Args:
        response: Raw provider text.
        component_name: Component the code is generated for.

    Returns:
        The extracted code, or ``None`` when no rule yields a valid candidate.
    """
    original = (response or "").strip()
    if not original:
        return None
    cleaned = original.upper()

    for rule in (*STRUCTURAL_RULES, *KEYWORD_RULES):
        candidate = rule.apply(cleaned)
        if candidate and is_valid_code(candidate, component_name):
            logger.debug(f"Extracted code (code={candidate} rule={rule.name!r})")
            return candidate

    for candidate in _ANY_FOUR.findall(cleaned):
        if is_valid_code(candidate, component_name):
            logger.debug(f"Extracted code (code={candidate} rule='all matches')")
            return candidate

    lowered = original.lower()
    if "generating" in lowered or "component" in lowered:
        match = _REASONING_CONTEXT.search(cleaned)
        if match and is_valid_code(match.group(1), component_name):
            return match.group(1)

    logger.debug(f"No code found in response (component={component_name!r})")
    return None
