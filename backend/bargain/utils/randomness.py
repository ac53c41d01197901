"""
Randomization and currency utilities.

WHAT: Integer draws, Fisher-Yates shuffle, whole-unit currency rounding
WHY: Every monetary threshold is scaled and rounded the same way
HOW: Small pure helpers taking an explicit random.Random instance
"""

import math
import random
from typing import Sequence, TypeVar

T = TypeVar("T")


def rand_int(rng: random.Random, lo: int, hi: int) -> int:
    """Uniform integer in [lo, hi], both ends inclusive."""
    return rng.randint(lo, hi)


def shuffle(items: Sequence[T], rng: random.Random) -> list[T]:
    """
    Return a Fisher-Yates shuffled copy of items.

    Args:
        items: Values to shuffle (left untouched)
        rng: Random source

    Returns:
        New list with the same values in random order
    """
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = rand_int(rng, 0, i)
        result[i], result[j] = result[j], result[i]
    return result


def round_currency(amount: float) -> int:
    """Round to the nearest whole currency unit, halves rounding up."""
    return int(math.floor(float(amount) + 0.5))


def scaled(amount: float, scale: float) -> int:
    """Scale a base amount by the session factor and round it."""
    return round_currency(amount * scale)


def format_currency(amount: float | None) -> str:
    """Format an amount as whole euros, e.g. 5.500 EUR."""
    if amount is None:
        return "-"
    grouped = f"{round_currency(amount):,}".replace(",", ".")
    return f"{grouped} EUR"
