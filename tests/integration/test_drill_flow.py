"""
Integration Tests for the Drill Flow.

Tests the learner loop end to end:
1. DrillSession asks the generator for questions
2. Answers are graded and recorded into the mastery stores
3. State is saved to and reloaded from the JSON state directory
4. The typer CLI drives the same loop
"""

import json
import random

import pytest
from typer.testing import CliRunner

from config import Settings, get_settings
from src.adaptive.models import QuestionType
from src.core.mastery import ALL_FORMS, Form
from src.delivery.drill_cli import app
from src.delivery.drill_session import DrillSession
from src.delivery.state_store import StateStore

pytestmark = pytest.mark.integration

FIRST_GROUP = ["alef", "beh", "sin", "mim", "dal"]


@pytest.fixture
def settings(tmp_path):
    return Settings(state_dir=tmp_path / "state", random_seed=7)


@pytest.fixture
def session(catalog, settings, clock):
    return DrillSession.build(
        catalog,
        settings=settings,
        state=StateStore(settings.state_dir, clock=clock),
        rng=random.Random(7),
        clock=clock,
    )


def _next_of_type(session, question_type, limit=500):
    for _ in range(limit):
        question = session.next_question()
        if question.type is question_type:
            return question
    pytest.fail(f"no {question_type.value} question in {limit} draws")


def _wrong_option(question):
    return next(o for o in question.options if o != question.correct_answer)


class TestDrillSession:
    def test_correct_answers_build_mastery(self, session):
        # 19 answers cannot unlock the second group, so every question stays in the first
        for _ in range(20):
            question = session.next_question()
            outcome = session.answer(question, question.correct_answer, response_ms=1500)
            assert outcome.correct
            assert outcome.confused_with is None

        assert session.tally.answered == 20
        assert session.tally.accuracy == 1.0
        practised = {symbol.id for symbol, *_ in session.symbol_rows()}
        assert practised and practised <= set(FIRST_GROUP)
        assert sum(session.form_coverage().values()) == 20

    def test_wrong_letter_name_records_confusion(self, session):
        question = _next_of_type(session, QuestionType.LETTER_RECOGNITION)
        chosen = _wrong_option(question)

        outcome = session.answer(question, chosen)

        assert not outcome.correct
        assert outcome.confused_with.name == chosen
        pairs = session.store.get_confusion_pairs(question.symbol_id)
        assert [(p.symbol_id, p.form) for p in pairs] == [(outcome.confused_with.id, question.form)]

    def test_wrong_glyph_records_confusion(self, session):
        question = _next_of_type(session, QuestionType.NAME_TO_LETTER)
        chosen = _wrong_option(question)

        outcome = session.answer(question, chosen)

        assert outcome.confused_with.glyph(question.form) == chosen

    def test_wrong_form_records_no_confusion(self, session):
        question = _next_of_type(session, QuestionType.FORM_RECOGNITION)

        outcome = session.answer(question, _wrong_option(question))

        assert outcome.confused_with is None
        assert session.store.get_confusion_pairs(question.symbol_id) == []
        assert session.store.get_form_mastery(question.symbol_id, question.form).exposures == 1

    def test_word_reading_updates_word_stores(self, session):
        for sid in FIRST_GROUP:
            for form in ALL_FORMS:
                for _ in range(5):
                    session.store.record_attempt(sid, form, True)

        question = _next_of_type(session, QuestionType.WORD_READING)
        session.answer(question, question.correct_answer, response_ms=2000)

        word_id = question.word.id
        assert session.word_store.get_word_mastery(word_id).exposures == 1
        assert session.selector.get_progress(word_id).times_presented == 1
        ctx = session.store.get_symbol_mastery(question.symbol_id).contextual_mastery
        assert ctx.in_words == pytest.approx(1.0)

    def test_save_and_reload(self, session, settings, clock):
        for _ in range(10):
            question = session.next_question()
            session.answer(question, question.correct_answer)
        session.save()

        reloaded = DrillSession.from_settings(settings, clock=clock)

        assert reloaded.store.serialize() == session.store.serialize()
        assert reloaded.selector.serialize() == session.selector.serialize()


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    monkeypatch.setenv("ALEPH_STATE_DIR", str(tmp_path / "state"))
    monkeypatch.setenv("ALEPH_RANDOM_SEED", "3")
    get_settings.cache_clear()
    yield tmp_path
    get_settings.cache_clear()


class TestCLI:
    runner = CliRunner()

    def test_help(self):
        result = self.runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "drill" in result.output

    def test_stats_without_progress(self, cli_env):
        result = self.runner.invoke(app, ["stats"])
        assert result.exit_code == 0
        assert "No progress yet" in result.output

    def test_drill_then_stats(self, cli_env):
        result = self.runner.invoke(app, ["drill", "-n", "3"], input="1\n1\n1\n")
        assert result.exit_code == 0, result.output
        assert "Session Complete" in result.output
        assert "By question type" in result.output
        assert (cli_env / "state" / "mastery.json").exists()

        result = self.runner.invoke(app, ["stats"])
        assert result.exit_code == 0
        assert "Letter Mastery" in result.output

    def test_quit_early(self, cli_env):
        result = self.runner.invoke(app, ["drill", "-n", "5"], input="q\n")
        assert result.exit_code == 0
        assert "Questions answered: 0" in result.output
        assert "By question type" not in result.output

    def test_export_import_reset(self, cli_env):
        self.runner.invoke(app, ["drill", "-n", "2"], input="2\n2\n")
        export_path = cli_env / "progress.json"

        result = self.runner.invoke(app, ["export", str(export_path)])
        assert result.exit_code == 0
        assert export_path.exists()

        result = self.runner.invoke(app, ["reset", "--yes"])
        assert result.exit_code == 0
        assert not (cli_env / "state" / "mastery.json").exists()

        result = self.runner.invoke(app, ["import", str(export_path), "--yes"])
        assert result.exit_code == 0, result.output
        assert "Imported v2.0 progress" in result.output
        assert (cli_env / "state" / "mastery.json").exists()

    def test_import_rejects_garbage(self, cli_env):
        bad = cli_env / "bad.json"
        bad.write_text("not json", encoding="utf-8")

        result = self.runner.invoke(app, ["import", str(bad), "--yes"])
        assert result.exit_code == 1
        assert "Import failed" in result.output

    def test_suggest(self, cli_env):
        result = self.runner.invoke(app, ["suggest"])
        assert result.exit_code == 0
        assert "nun" in result.output

    def test_legacy_import_keeps_saved_word_progress(
        self, cli_env, store, word_store, selector, clock
    ):
        state = StateStore(cli_env / "state", clock=clock)
        selector.update_mastery("ab", True, 1800)
        word_store.record_attempt("ab", True, 1800)
        state.save_word_progression(selector)
        state.save_word_mastery(word_store)

        store.record_attempt("beh", Form.ISOLATED, True)
        legacy = cli_env / "legacy.json"
        legacy.write_text(json.dumps(store.serialize()), encoding="utf-8")

        result = self.runner.invoke(app, ["import", str(legacy), "--yes"])
        assert result.exit_code == 0, result.output
        assert "Imported legacy progress" in result.output

        selector.reset()
        assert state.load_word_progression(selector) is True
        assert selector.get_progress("ab").times_presented == 1
        assert state.load_word_mastery().get_word_mastery("ab").exposures == 1
        assert "beh" in state.load_mastery()
