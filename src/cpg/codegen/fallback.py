# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Deterministic component code generation from the component name."""

import itertools
import logging
import re
import string
from typing import Collection

logger = logging.getLogger(__name__)

_ALPHANUMERIC = string.ascii_uppercase + string.digits
_WORD_SPLIT = re.compile(r"[\s\-()]")


def generate_fallback_code(component_name: str, issued_codes: Collection[str]) -> str:
    """Build a four-character code from the component name.

    Args:
        component_name: Component to encode.
        issued_codes: Codes already handed out; the result avoids them.

    Returns:
        A four-character code not in ``issued_codes``.
    """
    name = re.sub(r"[^A-Z0-9]", "", component_name.upper())

    if len(name) == 3:
        code = name + "0"
    elif len(_WORD_SPLIT.split(component_name)) == 1:
        if len(name) >= 4:
            consonants = re.sub(r"[AEIOU]", "", name)
            code = consonants[:4] if len(consonants) >= 4 else name[:4]
        else:
            code = name.ljust(4, "0")
    else:
        code = _code_from_words(component_name)

    if code in issued_codes:
        return generate_variation(code, issued_codes)
    return code


def _code_from_words(component_name: str) -> str:
    """Take initials from the longest words, then fill from their letters."""
    words = [
        re.sub(r"[^A-Za-z0-9]", "", word) for word in _WORD_SPLIT.split(component_name)
    ]
    by_length = sorted((word for word in words if word), key=len, reverse=True)

    code = ""
    for word in by_length:
        if len(code) < 4:
            code += word[0].upper()
    if len(code) < 4:
        for word in by_length:
            for char in word[1:].upper():
                if len(code) >= 4:
                    break
                if char.isalpha():
                    code += char
    return code[:4].ljust(4, "0")


def generate_variation(base_code: str, issued_codes: Collection[str]) -> str:
    """Derive an unused variant of a colliding code.

    Trailing digits 1-9 are tried first, then letters A-Z in the third
    position. When every one of those is taken, the trailing positions are
    widened until a free code turns up.

    Args:
        base_code: Four-character code that collided.
        issued_codes: Codes already handed out.

    Returns:
        A four-character code not in ``issued_codes``.
    """
    for digit in range(1, 10):
        variation = base_code[:3] + str(digit)
        if variation not in issued_codes:
            return variation

    for letter in string.ascii_uppercase:
        variation = base_code[:2] + letter + base_code[3]
        if variation not in issued_codes:
            return variation

    for width in (2, 3, 4):
        prefix = base_code[: 4 - width]
        for tail in itertools.product(_ALPHANUMERIC, repeat=width):
            variation = prefix + "".join(tail)
            if variation not in issued_codes:
                logger.warning(
                    f"Code variations exhausted, widened search (base={base_code} "
                    f"code={variation})"
                )
                return variation

    raise ValueError("Every four-character code has been issued.")
