"""
Unit tests for the weighted sampling helpers.
"""

import random
from collections import Counter

from src.adaptive.sampling import choose, shuffled, top_k_choice, weighted_choice


class TestWeightedChoice:
    def test_empty(self):
        assert weighted_choice([], lambda x: 1.0, random.Random(0)) is None

    def test_all_zero_weights(self):
        assert weighted_choice(["a", "b"], lambda x: 0.0, random.Random(0)) is None

    def test_never_picks_zero_weight(self):
        rng = random.Random(7)
        weights = {"a": 0.0, "b": 1.0, "c": 0.0}
        picks = {weighted_choice(list(weights), weights.get, rng) for _ in range(200)}
        assert picks == {"b"}

    def test_roughly_proportional(self):
        rng = random.Random(42)
        weights = {"a": 3.0, "b": 1.0}
        counts = Counter(weighted_choice(list(weights), weights.get, rng) for _ in range(4000))
        assert 0.70 < counts["a"] / 4000 < 0.80


class TestHelpers:
    def test_choose_empty(self):
        assert choose([], random.Random(0)) is None

    def test_top_k_only_picks_best(self):
        rng = random.Random(3)
        scores = {"a": 5, "b": 4, "c": 3, "d": 2, "e": 1}
        picks = {top_k_choice(list(scores), scores.get, rng, k=3) for _ in range(200)}
        assert picks == {"a", "b", "c"}

    def test_shuffled_is_a_permutation_of_a_copy(self):
        items = [1, 2, 3, 4]
        result = shuffled(items, random.Random(5))
        assert sorted(result) == items
        assert items == [1, 2, 3, 4]
