# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
import string

import pytest

from cpg.codegen.fallback import generate_fallback_code, generate_variation


@pytest.mark.parametrize(
    ("component", "expected"),
    [
        ("Oil", "OIL0"),
        ("Gearbox", "GRBX"),
        ("Pump", "PUMP"),
        ("AB", "AB00"),
        ("Motor Housing", "HMOU"),
        ("Drive-End Bearing Cap", "BDEC"),
    ],
)
def test_ph3_fb_001_code_is_built_from_the_name(component: str, expected: str) -> None:
    assert generate_fallback_code(component, issued_codes=[]) == expected


def test_ph3_fb_002_collision_tries_trailing_digit_first() -> None:
    assert generate_fallback_code("Oil", issued_codes=["OIL0"]) == "OIL1"


def test_ph3_fb_003_exhausted_digits_fall_back_to_third_position_letter() -> None:
    issued = {f"OIL{digit}" for digit in range(10)}

    assert generate_variation("OIL0", issued) == "OIA0"


def test_ph3_fb_004_exhausted_simple_variants_widen_search() -> None:
    issued = {f"OIL{digit}" for digit in range(10)}
    issued |= {f"OI{letter}0" for letter in string.ascii_uppercase}

    code = generate_variation("OIL0", issued)

    assert code == "OIAA"
    assert code not in issued


def test_ph3_fb_005_output_is_always_four_characters_and_unused() -> None:
    issued: list[str] = []
    for _ in range(40):
        code = generate_fallback_code("Bearing", issued)
        assert len(code) == 4
        assert code not in issued
        issued.append(code)
