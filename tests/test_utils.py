import math

import pytest

from fims.utils import format_location, format_number, is_valid_number, to_title_case


@pytest.mark.parametrize("v", [0, 7, -3.5, 9.081234, 10**300])
def test_is_valid_number_accepts_finite_numbers(v):
    assert is_valid_number(v) is True


@pytest.mark.parametrize("v", [None, True, "9.0", math.nan, math.inf, -math.inf, 10**400, -(10**400)])
def test_is_valid_number_rejects_everything_else(v):
    assert is_valid_number(v) is False


@pytest.mark.parametrize(
    "v, expected",
    [
        (2.5, "2.5"),
        (3.0, "3"),
        (0, "0"),
        (12345678, "12345678"),
        (12345678.9, "12345678.9"),
        (1e16, "10000000000000000"),
        (0.125, "0.125"),
    ],
)
def test_format_number_never_uses_exponent_notation(v, expected):
    assert format_number(v) == expected


@pytest.mark.parametrize("v", [None, math.nan, 10**400])
def test_format_number_missing_values(v):
    assert format_number(v) is None


def test_title_case_keeps_abbreviations_and_prepositions():
    assert to_title_case("gps reading of the farm") == "GPS Reading of the Farm"


def test_location_uppercases_lga_and_splits_hyphens():
    assert format_location("abuja-fct") == "Abuja FCT"
