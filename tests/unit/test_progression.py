"""
Unit tests for ProgressionPolicy group unlocking.
"""

from src.adaptive.progression import ProgressionPolicy
from src.core.mastery import Form

GROUPS = (("alef", "beh"), ("dal", "mim"), ("nun",))
ENABLED = ["alef", "beh", "dal", "mim", "nun"]


def _answer(store, symbol_id, correct, wrong=0):
    for _ in range(correct):
        store.record_attempt(symbol_id, Form.ISOLATED, True)
    for _ in range(wrong):
        store.record_attempt(symbol_id, Form.ISOLATED, False)


class TestActiveSymbols:
    def test_first_group_always_active(self, store):
        policy = ProgressionPolicy(GROUPS)
        assert policy.active_symbols(store, ENABLED) == ["alef", "beh"]

    def test_accurate_practice_unlocks_next_group_only(self, store):
        _answer(store, "alef", 5)
        _answer(store, "beh", 5)

        policy = ProgressionPolicy(GROUPS)
        assert policy.active_symbols(store, ENABLED) == ["alef", "beh", "dal", "mim"]

    def test_insufficient_coverage_blocks(self, store):
        _answer(store, "alef", 5)
        _answer(store, "beh", 4)

        policy = ProgressionPolicy(GROUPS)
        assert policy.active_symbols(store, ENABLED) == ["alef", "beh"]

    def test_low_accuracy_blocks(self, store):
        _answer(store, "alef", 3, wrong=2)
        _answer(store, "beh", 3, wrong=2)

        assert ProgressionPolicy(GROUPS).active_symbols(store, ENABLED) == ["alef", "beh"]
        lenient = ProgressionPolicy(GROUPS, min_mastery_for_new_symbol=0.6)
        assert lenient.active_symbols(store, ENABLED) == ["alef", "beh", "dal", "mim"]

    def test_restricted_to_enabled_symbols(self, store):
        policy = ProgressionPolicy(GROUPS)
        assert policy.active_symbols(store, ["beh", "nun"]) == ["beh"]

    def test_falls_back_to_enabled_when_nothing_is_active(self, store):
        policy = ProgressionPolicy(GROUPS)
        assert policy.active_symbols(store, ["nun"]) == ["nun"]

    def test_no_groups_means_everything_enabled(self, store):
        assert ProgressionPolicy(()).active_symbols(store, ENABLED) == ENABLED


class TestSuggestNext:
    def test_previews_earliest_incomplete_group(self):
        policy = ProgressionPolicy(GROUPS)
        assert policy.suggest_next(["alef", "beh"]) == ["dal", "mim"]
        assert policy.suggest_next(["alef", "beh", "dal"]) == ["mim"]

    def test_nothing_left(self):
        assert ProgressionPolicy(GROUPS).suggest_next(ENABLED) == []
