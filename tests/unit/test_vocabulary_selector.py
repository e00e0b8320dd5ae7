"""
Unit tests for VocabularySelector: known-symbol gating, recency exclusion,
spacing and the presentation ledger.
"""

from datetime import timedelta

import pytest

from src.adaptive.models import WordProgress
from src.adaptive.schemas import ProgressImportError
from src.adaptive.vocabulary_selector import VocabularySelector
from src.core.mastery import Form

FIRST_GROUP = ["alef", "beh", "sin", "mim", "dal"]


@pytest.fixture
def first_group_known(store, master):
    for sid in FIRST_GROUP:
        master(store, sid)
    return store


class TestKnownSymbols:
    def test_nothing_known_means_nothing_selected(self, selector):
        assert selector.known_symbol_ids() == []
        assert selector.select_next() is None

    def test_threshold(self, store, selector):
        store.record_attempt("alef", Form.ISOLATED, True)
        store.record_attempt("nun", Form.ISOLATED, False)
        assert selector.known_symbol_ids() == ["alef"]

    def test_only_item_readable_with_known_symbols(self, store, selector, master):
        master(store, "alef")
        master(store, "beh")
        assert selector.select_next().id == "ab"

    def test_never_selects_item_with_unknown_symbols(self, first_group_known, selector):
        # nun is attempted but below the threshold
        first_group_known.record_attempt("nun", Form.ISOLATED, False)
        known = set(selector.known_symbol_ids())
        assert "nun" not in known

        for _ in range(50):
            item = selector.select_next()
            assert set(item.required_symbols) <= known


class TestRecency:
    def test_recently_shown_items_are_avoided(self, first_group_known, selector):
        for _ in range(30):
            assert selector.select_next(["ab", "bad"]).id not in {"ab", "bad"}

    def test_falls_back_when_everything_was_recent(self, store, selector, master):
        master(store, "alef")
        master(store, "beh")
        assert selector.select_next(["ab"]).id == "ab"

    def test_category_window_holds_three_newest_first(self, first_group_known, selector):
        chosen = [selector.select_next() for _ in range(4)]

        assert len(selector.recent_categories) == 3
        assert selector.recent_categories[0] == chosen[-1].category


class TestSpacing:
    def _progress(self, clock, hours_ago, presented, correct):
        return WordProgress(
            word_id="ab",
            last_seen=clock.now - timedelta(hours=hours_ago),
            times_presented=presented,
            times_correct=correct,
        )

    def test_unseen_item_is_due(self, clock):
        assert VocabularySelector._spacing_score(None, clock.now) == 1.0

    def test_rises_towards_the_interval(self, clock):
        # low accuracy: 6 hour interval
        progress = self._progress(clock, 3, presented=2, correct=0)
        assert VocabularySelector._spacing_score(progress, clock.now) == pytest.approx(0.5)

    def test_plateau_for_one_interval(self, clock):
        progress = self._progress(clock, 30, presented=10, correct=10)
        assert VocabularySelector._spacing_score(progress, clock.now) == 1.0

    def test_decays_to_floor(self, clock):
        progress = self._progress(clock, 30, presented=2, correct=0)
        # ratio 5 -> 1 - 3/10
        assert VocabularySelector._spacing_score(progress, clock.now) == pytest.approx(0.7)
        stale = self._progress(clock, 500, presented=2, correct=0)
        assert VocabularySelector._spacing_score(stale, clock.now) == 0.5


class TestLedger:
    def test_first_presentation(self, selector, clock):
        selector.update_mastery("ab", True, 1500)

        progress = selector.get_progress("ab")
        assert progress.times_presented == 1
        assert progress.times_correct == 1
        assert progress.average_response_time == pytest.approx(1500)
        assert progress.last_seen == clock.now

    def test_running_mean_and_unique_confusions(self, selector):
        selector.update_mastery("ab", True, 1000, confused_with_id="bad")
        selector.update_mastery("ab", False, 3000, confused_with_id="bad")
        selector.update_mastery("ab", False, 2000, confused_with_id="dam")

        progress = selector.get_progress("ab")
        assert progress.times_presented == 3
        assert progress.times_correct == 1
        assert progress.average_response_time == pytest.approx(2000)
        assert progress.confused_with == ["bad", "dam"]

    def test_review_queue(self, first_group_known, selector, clock):
        selector.update_mastery("ab", True, 1000)
        selector.update_mastery("bad", False, 1000)

        assert [item.id for item in selector.get_items_for_review()] == ["bad"]

        clock.advance(hours=13)
        assert [item.id for item in selector.get_items_for_review()] == ["bad", "ab"]
        assert len(selector.get_items_for_review(limit=1)) == 1

    def test_reset(self, selector):
        selector.update_mastery("ab", True, 1000)
        selector.reset()
        assert selector.get_progress("ab") is None
        assert selector.recent_categories == ()


class TestSerialization:
    def test_round_trip(self, first_group_known, selector, catalog, clock):
        selector.select_next()
        selector.update_mastery("ab", False, 2100, confused_with_id="bad")

        blob = selector.serialize()
        assert blob["wordMastery"][0]["wordId"] == "ab"
        assert blob["wordMastery"][0]["timesPresented"] == 1

        other = VocabularySelector(first_group_known, catalog, clock=clock)
        other.deserialize(selector.to_json())
        assert other.get_progress("ab") == selector.get_progress("ab")
        assert other.recent_categories == selector.recent_categories

    def test_invalid_blob_leaves_state_untouched(self, selector):
        selector.update_mastery("ab", True, 1000)

        with pytest.raises(ProgressImportError):
            selector.deserialize({"wordMastery": [{"wordId": "bad"}]})

        assert selector.get_progress("ab") is not None
        assert selector.get_progress("bad") is None
