"""
Drill session: wires the engine together and feeds answers back.

A DrillSession owns one learner's stores for the duration of a run:
- asks the QuestionGenerator for the next question
- grades the chosen option
- records the outcome (with confusion data) into the mastery stores
- persists everything through the StateStore
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field

from loguru import logger

from config import Settings
from src.adaptive.mastery_store import MasteryStore
from src.adaptive.models import Context, Question, QuestionType
from src.adaptive.question_generator import QuestionGenerator
from src.adaptive.sampling import RandomSource, default_rng
from src.adaptive.symbol_analyzer import SymbolAnalyzer
from src.adaptive.vocabulary_selector import VocabularySelector
from src.adaptive.word_mastery_store import WordMasteryStore
from src.content.catalog import Catalog, Symbol
from src.core.mastery import ALL_FORMS, Clock, utc_now
from src.delivery.state_store import StateStore

WORD_CONTEXTS = (QuestionType.WORD_CONTEXT, QuestionType.WORD_READING)


@dataclass
class AnswerOutcome:
    """Result of grading one answer."""

    correct: bool
    correct_answer: str
    confused_with: Symbol | None = None


@dataclass
class SessionTally:
    answered: int = 0
    correct: int = 0
    by_type: dict[QuestionType, int] = field(default_factory=dict)

    @property
    def accuracy(self) -> float:
        return self.correct / self.answered if self.answered else 0.0


class DrillSession:
    """
    One learner's drilling engine and its persistence.

    Usage:
        session = DrillSession.from_settings(get_settings())
        question = session.next_question()
        outcome = session.answer(question, question.options[0], response_ms=1800)
        session.save()
    """

    def __init__(
        self,
        catalog: Catalog,
        store: MasteryStore,
        word_store: WordMasteryStore,
        selector: VocabularySelector,
        generator: QuestionGenerator,
        state: StateStore | None = None,
    ):
        self.catalog = catalog
        self.store = store
        self.word_store = word_store
        self.selector = selector
        self.generator = generator
        self.state = state
        self.tally = SessionTally()

        self._by_name = {s.name: s for s in catalog.symbols}

    @classmethod
    def build(
        cls,
        catalog: Catalog,
        store: MasteryStore | None = None,
        word_store: WordMasteryStore | None = None,
        settings: Settings | None = None,
        state: StateStore | None = None,
        rng: RandomSource | None = None,
        clock: Clock = utc_now,
    ) -> DrillSession:
        """Assemble the engine around existing (or fresh) stores."""
        settings = settings or Settings()
        rng = rng or default_rng()
        if store is None:
            store = MasteryStore(clock=clock)
        if word_store is None:
            word_store = WordMasteryStore(clock=clock)

        selector = VocabularySelector(
            store,
            catalog,
            strategy=settings.get_selection_strategy(),
            known_symbol_threshold=settings.known_symbol_threshold,
            rng=rng,
            clock=clock,
        )
        generator = QuestionGenerator(
            store,
            catalog,
            selector,
            SymbolAnalyzer(catalog),
            config=settings.get_generator_config(),
            rng=rng,
        )
        return cls(catalog, store, word_store, selector, generator, state=state)

    @classmethod
    def from_settings(cls, settings: Settings, clock: Clock = utc_now) -> DrillSession:
        """
        Load the catalog and saved state described by settings.

        Raises:
            CatalogError: If the reference tables cannot be loaded
            ProgressImportError: If saved state is corrupt
        """
        catalog = Catalog.load(settings.data_dir)
        state = StateStore(settings.state_dir, clock=clock)
        rng = random.Random(settings.random_seed) if settings.random_seed is not None else None

        session = cls.build(
            catalog,
            store=state.load_mastery(),
            word_store=state.load_word_mastery(),
            settings=settings,
            state=state,
            rng=rng,
            clock=clock,
        )
        state.load_word_progression(session.selector)
        return session

    # =========================================================================
    # Drilling
    # =========================================================================

    def next_question(self) -> Question:
        return self.generator.generate_question()

    def answer(self, question: Question, chosen: str, response_ms: float | None = None) -> AnswerOutcome:
        """
        Grade an answer and record it.

        Args:
            question: Question that was shown
            chosen: Option the learner picked
            response_ms: Time taken to answer

        Returns:
            AnswerOutcome with the confused symbol when one can be identified
        """
        correct = question.is_correct(chosen)
        confused = None if correct else self._confused_symbol(question, chosen)

        if question.symbol is not None and question.form is not None:
            self.store.record_attempt(
                question.symbol.id,
                question.form,
                correct,
                context=Context.IN_WORD if question.type in WORD_CONTEXTS else Context.STANDALONE,
                confused_with_symbol_id=confused.id if confused else None,
                confused_with_form=question.form if confused else None,
            )

        if question.type is QuestionType.WORD_READING and question.word and question.word.id:
            self.word_store.record_attempt(question.word.id, correct, response_ms)
            self.selector.update_mastery(question.word.id, correct, response_ms or 0.0)

        self.tally.answered += 1
        self.tally.correct += int(correct)
        self.tally.by_type[question.type] = self.tally.by_type.get(question.type, 0) + 1

        if confused:
            logger.debug(f"Recorded confusion {question.symbol_id} -> {confused.id}")
        return AnswerOutcome(correct=correct, correct_answer=question.correct_answer, confused_with=confused)

    def _confused_symbol(self, question: Question, chosen: str) -> Symbol | None:
        """Symbol whose rendering matches a wrong option, if any."""
        if question.type is QuestionType.FORM_RECOGNITION:
            return None
        if question.type is QuestionType.NAME_TO_LETTER and question.form is not None:
            for symbol in self.catalog.symbols:
                if symbol.glyph(question.form) == chosen:
                    return symbol
            return None
        return self._by_name.get(chosen)

    def save(self) -> None:
        if self.state is None:
            return
        self.state.save_mastery(self.store)
        self.state.save_word_mastery(self.word_store)
        self.state.save_word_progression(self.selector)

    # =========================================================================
    # Reporting
    # =========================================================================

    def symbol_rows(self) -> list[tuple[Symbol, float, int, int]]:
        """(symbol, overall mastery, exposures, level) for every practised symbol."""
        rows = []
        for symbol in self.catalog.symbols:
            mastery = self.store.get_symbol_mastery(symbol.id)
            if mastery is None:
                continue
            rows.append((symbol, mastery.overall_mastery, mastery.total_exposures, int(mastery.mastery_level)))
        return rows

    def weakest_forms(self, limit: int = 5) -> list[tuple[Symbol, str, float]]:
        result = []
        for target in self.store.get_symbols_needing_practice(limit):
            symbol = self.catalog.get_symbol(target.symbol_id)
            if symbol is not None:
                result.append((symbol, target.form.display_name, target.score))
        return result

    def form_coverage(self) -> dict[str, int]:
        """Exposures per form across all symbols."""
        totals = {form.display_name: 0 for form in ALL_FORMS}
        for mastery in self.store.get_all().values():
            for form in ALL_FORMS:
                totals[form.display_name] += mastery.forms[form].exposures
        return totals
