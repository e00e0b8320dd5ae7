"""
Randomized selection helpers shared by the generator and the selector.

Every helper takes an explicit `random.Random`. Components default to one
process-wide instance and tests pass a seeded one.
"""

from __future__ import annotations

import random
from collections.abc import Callable, Sequence
from typing import TypeVar

T = TypeVar("T")

RandomSource = random.Random

_process_rng = random.Random()


def default_rng() -> RandomSource:
    """The process-wide random source."""
    return _process_rng


def weighted_choice(
    items: Sequence[T],
    weight_fn: Callable[[T], float],
    rng: RandomSource,
) -> T | None:
    """
    Draw one item with probability proportional to its weight.

    Args:
        items: Candidates
        weight_fn: Non-negative weight for a candidate
        rng: Random source

    Returns:
        The chosen item, or None when there are no candidates or every
        weight is zero
    """
    weights = [max(0.0, float(weight_fn(item))) for item in items]
    total = sum(weights)
    if not items or total <= 0:
        return None

    threshold = rng.random() * total
    for item, weight in zip(items, weights):
        threshold -= weight
        if threshold <= 0 and weight > 0:
            return item

    # Float rounding can leave a sliver; fall back to the last weighted item
    for item, weight in zip(reversed(items), reversed(weights)):
        if weight > 0:
            return item
    return None


def choose(items: Sequence[T], rng: RandomSource) -> T | None:
    """Uniform pick (None when empty)."""
    return weighted_choice(items, lambda _: 1.0, rng)


def top_k_choice(
    items: Sequence[T],
    score_fn: Callable[[T], float],
    rng: RandomSource,
    k: int = 3,
) -> T | None:
    """
    Rank by score descending and pick uniformly among the best `k`.

    Ties keep their input order (stable sort).
    """
    ranked = sorted(items, key=score_fn, reverse=True)
    return choose(ranked[:k], rng)


def shuffled(items: Sequence[T], rng: RandomSource) -> list[T]:
    """Uniform permutation of a copy of `items` (Fisher-Yates)."""
    result = list(items)
    rng.shuffle(result)
    return result
