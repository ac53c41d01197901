"""
Unit tests for randomization and currency helpers.

WHAT: Test shuffle, rounding and formatting helpers
WHY: Every threshold and displayed amount goes through these
HOW: Seeded random.Random instances and fixed values
"""

import random

import pytest

from bargain.utils.randomness import format_currency, rand_int, round_currency, scaled, shuffle


@pytest.mark.unit
def test_rand_int_is_inclusive():
    rng = random.Random(7)
    draws = {rand_int(rng, 1, 3) for _ in range(200)}
    assert draws == {1, 2, 3}


@pytest.mark.unit
def test_shuffle_returns_permutation_without_mutating_input():
    items = [1.0, 1.3, 1.5]
    result = shuffle(items, random.Random(42))

    assert sorted(result) == sorted(items)
    assert items == [1.0, 1.3, 1.5]
    assert result is not items


@pytest.mark.unit
def test_shuffle_handles_empty_and_single():
    rng = random.Random(1)
    assert shuffle([], rng) == []
    assert shuffle([5], rng) == [5]


@pytest.mark.unit
@pytest.mark.parametrize("amount,expected", [
    (4999.5, 5000),
    (4999.49, 4999),
    (0.5, 1),
    (7150.0, 7150),
])
def test_round_currency_rounds_half_up(amount, expected):
    assert round_currency(amount) == expected


@pytest.mark.unit
def test_scaled_applies_factor_and_rounds():
    assert scaled(5500, 1.3) == 7150
    assert scaled(1500, 1.5) == 2250
    assert scaled(100, 1.3) == 130


@pytest.mark.unit
def test_format_currency():
    assert format_currency(5500) == "5.500 EUR"
    assert format_currency(12375.4) == "12.375 EUR"
    assert format_currency(950) == "950 EUR"
    assert format_currency(None) == "-"
