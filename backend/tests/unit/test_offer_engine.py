"""
Unit tests for the seller offer engine.

WHAT: Test concession schedules and floor clamping
WHY: The seller's offer must decrease toward, never past, the floor
HOW: Scripted and seeded random sources with known margins
"""

import random

import pytest

from bargain.services.offer_engine import compute_next_offer


@pytest.mark.unit
def test_margin_percent_uses_drawn_step(rng):
    # first step (2%) of the 2000 margin
    assert compute_next_offer(5500, 3500, 1, rng=rng) == 5460


@pytest.mark.unit
def test_at_floor_returns_floor_unchanged(rng):
    assert compute_next_offer(3500, 3500, 5, rng=rng) == 3500


@pytest.mark.unit
def test_below_floor_is_left_alone(rng):
    assert compute_next_offer(3400, 3500, 5, rng=rng) == 3400


@pytest.mark.unit
def test_tiny_margin_still_decreases_to_floor(rng):
    assert compute_next_offer(3501, 3500, 9, rng=rng) == 3500


@pytest.mark.unit
def test_offers_strictly_decrease_and_never_cross_floor():
    rng = random.Random(11)
    offer, floor = 7150, 4550
    for round_number in range(1, 60):
        next_offer = compute_next_offer(offer, floor, round_number, rng=rng)
        assert floor <= next_offer
        if offer > floor:
            assert next_offer < offer
        else:
            assert next_offer == offer
        offer = next_offer


@pytest.mark.unit
def test_fixed_markdown_schedule_scales_markdowns(rng):
    first = compute_next_offer(7150, 4550, 1, rng=rng, scale=1.3, schedule="fixed_markdown")
    second = compute_next_offer(first, 4550, 2, rng=rng, scale=1.3, schedule="fixed_markdown")

    assert first == 5850
    assert second == 5200


@pytest.mark.unit
def test_fixed_markdown_late_rounds_take_share_of_margin(rng):
    # 40% of the remaining 1000 margin
    assert compute_next_offer(4500, 3500, 4, rng=rng, schedule="fixed_markdown") == 4100


@pytest.mark.unit
def test_fixed_markdown_clamps_to_floor(rng):
    assert compute_next_offer(3800, 3500, 1, rng=rng, schedule="fixed_markdown") == 3500
