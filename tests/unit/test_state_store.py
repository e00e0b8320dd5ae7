"""
Unit tests for the JSON StateStore.
"""

import pytest

from src.adaptive.schemas import ProgressImportError
from src.core.mastery import Form
from src.delivery.state_store import StateStore


@pytest.fixture
def state(tmp_path, clock):
    return StateStore(tmp_path / "state", clock=clock)


class TestStateStore:
    def test_empty_directory_loads_empty_state(self, state, selector):
        assert len(state.load_mastery()) == 0
        assert len(state.load_word_mastery()) == 0
        assert state.load_word_progression(selector) is False
        assert state.has_state() is False

    def test_save_and_load(self, state, store, word_store, selector):
        store.record_attempt("sin", Form.INITIAL, True)
        word_store.record_attempt("salam", False, 2500)
        selector.update_mastery("salam", False, 2500)

        state.save_mastery(store)
        state.save_word_mastery(word_store)
        state.save_word_progression(selector)
        selector.reset()

        assert state.has_state()
        assert state.load_mastery().serialize() == store.serialize()
        assert state.load_word_mastery().get_word_mastery("salam").exposures == 1
        assert state.load_word_progression(selector) is True
        assert selector.get_progress("salam").times_presented == 1

    def test_files_are_utf8_json(self, state, store):
        store.record_attempt("alef", Form.ISOLATED, True)
        path = state.save_mastery(store)

        assert path.name == "mastery.json"
        assert '"letterId": "alef"' in path.read_text(encoding="utf-8")
        assert not path.with_suffix(".json.tmp").exists()

    def test_corrupt_file_raises(self, state):
        state.mastery_path.write_text("{broken", encoding="utf-8")
        with pytest.raises(ProgressImportError):
            state.load_mastery()
        assert state.mastery_path.exists()

    def test_reset(self, state, store, word_store):
        store.record_attempt("alef", Form.ISOLATED, True)
        state.save_mastery(store)
        state.save_word_mastery(word_store)

        assert state.reset() == 2
        assert state.reset() == 0
        assert not state.has_state()

    def test_non_utf8_file_raises(self, state):
        state.mastery_path.write_bytes(b'{"alef": "\xe9"}')
        with pytest.raises(ProgressImportError):
            state.load_mastery()
