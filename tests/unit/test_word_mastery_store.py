"""
Unit tests for WordMasteryStore.
"""

import pytest

from src.adaptive.schemas import ProgressImportError
from src.adaptive.word_mastery_store import WordMasteryStore
from src.core.mastery import MasteryLevel


class TestRecordAttempt:
    def test_first_correct_attempt(self, word_store, clock):
        word_store.record_attempt("ab", True, response_time_ms=1200)

        mastery = word_store.get_word_mastery("ab")
        assert mastery.exposures == 1
        assert mastery.correct_answers == 1
        assert mastery.recent_accuracy == [1]
        assert mastery.last_seen == clock.now
        assert mastery.average_response_time == pytest.approx(1200)
        assert mastery.overall_mastery == pytest.approx(1.0)
        assert mastery.mastery_level == MasteryLevel.MASTERED

    def test_running_mean_latency(self, word_store):
        word_store.record_attempt("ab", True, response_time_ms=1000)
        word_store.record_attempt("ab", False, response_time_ms=2000)
        word_store.record_attempt("ab", True, response_time_ms=3000)

        assert word_store.get_word_mastery("ab").average_response_time == pytest.approx(2000)

    def test_window_is_bounded(self, word_store):
        for i in range(8):
            word_store.record_attempt("bad", i >= 3)

        mastery = word_store.get_word_mastery("bad")
        assert mastery.recent_accuracy == [1, 1, 1, 1, 1]
        # 0.7 x 1.0 + 0.3 x 5/8
        assert mastery.overall_mastery == pytest.approx(0.7 + 0.3 * 5 / 8)

    def test_unknown_word(self, word_store):
        assert word_store.get_word_mastery("nope") is None


class TestQueries:
    def test_unseen_items_rank_first(self, word_store):
        word_store.record_attempt("ab", True)
        word_store.record_attempt("bad", True)

        ranked = word_store.get_items_needing_practice(["ab", "bad", "man"], limit=10)
        assert [t.word_id for t in ranked] == ["man", "ab", "bad"]
        assert ranked[0].score == 0.0

    def test_practice_limit(self, word_store):
        ranked = word_store.get_items_needing_practice(["ab", "bad", "man"], limit=2)
        assert len(ranked) == 2

    def test_average_ignores_items_with_few_exposures(self, word_store):
        for _ in range(3):
            word_store.record_attempt("ab", True)
        word_store.record_attempt("bad", False)

        assert word_store.get_average_mastery(["ab", "bad"]) == pytest.approx(1.0)
        assert word_store.get_average_mastery(["bad", "man"]) == 0.0

    def test_stats(self, word_store):
        word_store.record_attempt("ab", True)
        word_store.record_attempt("bad", False)

        stats = word_store.get_stats(["ab", "bad", "man"])
        assert stats.practiced == 2
        assert stats.mastered == 1
        assert stats.total == 3
        assert stats.average_mastery == pytest.approx(0.5)


class TestSerialization:
    def test_round_trip(self, word_store, clock):
        word_store.record_attempt("ab", True, response_time_ms=900)
        word_store.record_attempt("ab", False, response_time_ms=1500)

        blob = word_store.serialize()
        assert blob["ab"]["wordId"] == "ab"
        assert blob["ab"]["averageResponseTime"] == pytest.approx(1200)

        restored = WordMasteryStore.from_json(word_store.to_json(), clock=clock)
        assert restored.get_word_mastery("ab") == word_store.get_word_mastery("ab")

    def test_rejects_malformed_blob(self):
        with pytest.raises(ProgressImportError):
            WordMasteryStore.restore({"ab": {"wordId": "ab", "exposures": -1,
                                             "lastSeen": "2024-05-01T10:00:00.000Z"}})
