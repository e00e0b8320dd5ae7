"""
Adaptive question generator.

Each call to `generate_question()` runs four phases:

1. Word-reading gate: with enough active symbols, occasionally hand off to
   the vocabulary selector and test one symbol inside a real word.
2. Symbol/form selection: weighted draw over active symbols x forms,
   favouring unseen and inaccurate forms, confused symbols, and pairs not
   asked recently.
3. Question-type selection: weighted by the symbol's mastery level.
4. Construction: options, correct answer, and word data where relevant.

Generation never fails. Empty pools fall back to a uniform random symbol and
a letter-recognition question.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from loguru import logger

from src.adaptive.mastery_store import MasteryStore
from src.adaptive.models import Question, QuestionType, QuestionWord, SymbolMastery
from src.adaptive.progression import MIN_MASTERY_FOR_NEW_SYMBOL, ProgressionPolicy
from src.adaptive.sampling import RandomSource, choose, default_rng, shuffled, weighted_choice
from src.adaptive.symbol_analyzer import SymbolAnalyzer
from src.adaptive.vocabulary_selector import VocabularySelector
from src.content.catalog import Catalog, Symbol
from src.core.mastery import ALL_FORMS, Form, MasteryLevel

# ============================================================================
# Configuration
# ============================================================================

QuizTypeWeights = Mapping[MasteryLevel, Mapping[QuestionType, float]]

DEFAULT_QUIZ_TYPE_WEIGHTS: dict[MasteryLevel, dict[QuestionType, float]] = {
    MasteryLevel.LEARNING: {
        QuestionType.LETTER_RECOGNITION: 0.50,
        QuestionType.NAME_TO_LETTER: 0.30,
        QuestionType.FORM_RECOGNITION: 0.15,
        QuestionType.WORD_CONTEXT: 0.05,
        QuestionType.WORD_READING: 0.00,
    },
    MasteryLevel.FAMILIAR: {
        QuestionType.LETTER_RECOGNITION: 0.30,
        QuestionType.NAME_TO_LETTER: 0.30,
        QuestionType.FORM_RECOGNITION: 0.20,
        QuestionType.WORD_CONTEXT: 0.15,
        QuestionType.WORD_READING: 0.05,
    },
    MasteryLevel.PROFICIENT: {
        QuestionType.LETTER_RECOGNITION: 0.20,
        QuestionType.NAME_TO_LETTER: 0.20,
        QuestionType.FORM_RECOGNITION: 0.25,
        QuestionType.WORD_CONTEXT: 0.25,
        QuestionType.WORD_READING: 0.10,
    },
    MasteryLevel.MASTERED: {
        QuestionType.LETTER_RECOGNITION: 0.10,
        QuestionType.NAME_TO_LETTER: 0.10,
        QuestionType.FORM_RECOGNITION: 0.25,
        QuestionType.WORD_CONTEXT: 0.40,
        QuestionType.WORD_READING: 0.15,
    },
}

# (minimum mean mastery, probability) checked top-down
WORD_READING_CHANCES: tuple[tuple[float, float], ...] = (
    (0.80, 0.30),
    (0.60, 0.20),
    (0.40, 0.15),
    (0.00, 0.10),
)
MIN_ACTIVE_FOR_WORD_READING = 3

OPTION_COUNT = 4
DISTRACTOR_ATTEMPTS = 50
HISTORY_SIZE = 10

# Selection weights
UNSEEN_FORM_WEIGHT = 2.0
NEW_FORM_WEIGHT = 1.5
NEW_FORM_EXPOSURES = 3
MIN_FORM_WEIGHT = 0.1
MEDIAL_DAMPING = 0.3
MEDIAL_NEEDS_ISOLATED = 5
EDGE_DAMPING = 0.5
EDGE_NEEDS_ISOLATED = 3
REPEAT_PENALTY_SMALL_SET = 0.5
REPEAT_PENALTY = 0.3
SMALL_ACTIVE_SET = 5
WEAK_FORM_ACCURACY = 0.7
WEAK_FORM_BOOST = 1.5


@dataclass(frozen=True)
class GeneratorConfig:
    """
    Tunables for the question generator.

    `enabled_symbol_ids` of None means every catalog symbol.
    """

    enabled_symbol_ids: tuple[str, ...] | None = None
    min_mastery_for_new_symbol: float = MIN_MASTERY_FOR_NEW_SYMBOL
    confusion_pair_boost: float = 2.0
    form_progression_enabled: bool = True
    word_reading_enabled: bool = True
    quiz_type_weights: QuizTypeWeights = field(
        default_factory=lambda: {lvl: dict(w) for lvl, w in DEFAULT_QUIZ_TYPE_WEIGHTS.items()}
    )


@dataclass(frozen=True)
class _Candidate:
    symbol: Symbol
    form: Form
    weight: float


class QuestionGenerator:
    """
    Emits multiple-choice questions targeted at the learner's weak spots.

    Reads mastery, never writes it; the caller reports outcomes back to the
    stores. Keeps the last ten questions to avoid repeating itself.

    Usage:
        generator = QuestionGenerator(store, catalog, selector, analyzer)
        question = generator.generate_question()
    """

    def __init__(
        self,
        store: MasteryStore,
        catalog: Catalog,
        selector: VocabularySelector,
        analyzer: SymbolAnalyzer,
        config: GeneratorConfig | None = None,
        rng: RandomSource | None = None,
        progression_groups: tuple[tuple[str, ...], ...] | None = None,
    ):
        self._store = store
        self._catalog = catalog
        self._selector = selector
        self._analyzer = analyzer
        self.config = config or GeneratorConfig()
        self._rng = rng or default_rng()
        self._groups = (
            progression_groups if progression_groups is not None else catalog.progression_groups
        )
        self._history: deque[Question] = deque(maxlen=HISTORY_SIZE)

    # =========================================================================
    # Public API
    # =========================================================================

    @property
    def recent_questions(self) -> tuple[Question, ...]:
        """Last emitted questions, oldest first."""
        return tuple(self._history)

    @property
    def policy(self) -> ProgressionPolicy:
        return ProgressionPolicy(self._groups, self.config.min_mastery_for_new_symbol)

    def update_config(self, **changes: Any) -> GeneratorConfig:
        """Replace selected config fields; returns the new config."""
        if changes.get("enabled_symbol_ids") is not None:
            changes["enabled_symbol_ids"] = tuple(changes["enabled_symbol_ids"])
        self.config = replace(self.config, **changes)
        logger.debug(f"Generator config updated: {sorted(changes)}")
        return self.config

    def enabled_symbol_ids(self) -> list[str]:
        if self.config.enabled_symbol_ids is None:
            return self._catalog.symbol_ids()
        return [sid for sid in self.config.enabled_symbol_ids if self._catalog.get_symbol(sid)]

    def enabled_symbol_count(self) -> int:
        return len(self.enabled_symbol_ids())

    def active_symbol_ids(self) -> list[str]:
        return self.policy.active_symbols(self._store, self.enabled_symbol_ids())

    def suggest_next(self) -> list[str]:
        """Preview of the next symbols to be introduced (does not activate them)."""
        return self.policy.suggest_next(self.active_symbol_ids())

    def generate_question(self) -> Question:
        """
        Produce the next question.

        Returns:
            A Question with four options, one of them correct
        """
        active = self.active_symbol_ids()

        question = None
        if self._word_reading_roll(active):
            question = self._word_reading_question(active)
            if question is None:
                logger.debug("Word reading unavailable; falling back to symbol drill")

        if question is None:
            symbol, form = self._select_symbol_and_form(active)
            question_type = self._select_question_type(symbol, form)
            question = self._build(symbol, form, question_type)

        self._history.append(question)
        return question

    # =========================================================================
    # Phase 1: word-reading gate
    # =========================================================================

    def _word_reading_roll(self, active: list[str]) -> bool:
        if not self.config.word_reading_enabled or len(active) < MIN_ACTIVE_FOR_WORD_READING:
            return False

        scores = [self._store.get_overall_mastery(sid) for sid in active]
        nonzero = [s for s in scores if s > 0]
        mean = sum(nonzero) / len(nonzero) if nonzero else 0.0

        chance = next(p for floor, p in WORD_READING_CHANCES if mean >= floor)
        return self._rng.random() < chance

    def _word_reading_question(self, active: list[str]) -> Question | None:
        recent_words = [q.word.id for q in self._history if q.word and q.word.id]
        item = self._selector.select_next(recent_words)
        if item is None:
            return None

        occurrences = self._analyzer.analyze(item.text)
        recent_pairs = {(q.symbol_id, q.form) for q in self._history}
        active_set = set(active)

        in_active = [o for o in occurrences if o.symbol_id in active_set]
        uncovered = [o for o in in_active if (o.symbol_id, o.form) not in recent_pairs]
        occurrence = choose(uncovered or in_active or occurrences, self._rng)
        if occurrence is None:
            return None

        symbol = self._catalog.get_symbol(occurrence.symbol_id)
        if symbol is None:
            return None

        return self._choice_question(
            QuestionType.WORD_READING,
            symbol,
            occurrence.form,
            correct=symbol.name,
            value_fn=lambda s: s.name,
            word=QuestionWord(
                id=item.id,
                text=item.text,
                transliteration=item.transliteration,
                meaning=item.meaning,
            ),
            target_index=occurrence.position,
        )

    # =========================================================================
    # Phase 2: symbol and form
    # =========================================================================

    def _select_symbol_and_form(self, active: list[str]) -> tuple[Symbol, Form]:
        recent_pairs = [(q.symbol_id, q.form) for q in self._history]
        penalty = REPEAT_PENALTY_SMALL_SET if len(active) < SMALL_ACTIVE_SET else REPEAT_PENALTY

        pool: list[_Candidate] = []
        for sid in active:
            symbol = self._catalog.get_symbol(sid)
            if symbol is None:
                continue
            mastery = self._store.get_symbol_mastery(sid)
            for form in ALL_FORMS:
                weight = self._form_weight(mastery, form)
                weight *= penalty ** recent_pairs.count((sid, form))
                pool.append(_Candidate(symbol, form, weight))

        picked = weighted_choice(pool, lambda c: c.weight, self._rng)
        if picked is not None:
            return picked.symbol, picked.form

        logger.debug("Selection pool empty; picking a random enabled symbol")
        symbols = [s for s in map(self._catalog.get_symbol, self.enabled_symbol_ids()) if s]
        symbol = choose(symbols, self._rng) or self._catalog.symbols[0]
        form = choose(ALL_FORMS, self._rng) or Form.ISOLATED
        return symbol, form

    def _form_weight(self, mastery: SymbolMastery | None, form: Form) -> float:
        fm = mastery.forms[form] if mastery else None
        if fm is None or fm.exposures == 0:
            weight = UNSEEN_FORM_WEIGHT
        elif fm.exposures < NEW_FORM_EXPOSURES:
            weight = NEW_FORM_WEIGHT
        else:
            weight = max(MIN_FORM_WEIGHT, 1 - fm.accuracy)

        if mastery and mastery.confused_with:
            weight *= self.config.confusion_pair_boost

        if self.config.form_progression_enabled:
            isolated_exposures = mastery.forms[Form.ISOLATED].exposures if mastery else 0
            if form is Form.MEDIAL and isolated_exposures < MEDIAL_NEEDS_ISOLATED:
                weight *= MEDIAL_DAMPING
            elif form in (Form.INITIAL, Form.FINAL) and isolated_exposures < EDGE_NEEDS_ISOLATED:
                weight *= EDGE_DAMPING

        return weight

    # =========================================================================
    # Phase 3: question type
    # =========================================================================

    def _select_question_type(self, symbol: Symbol, form: Form) -> QuestionType:
        mastery = self._store.get_symbol_mastery(symbol.id)
        level = mastery.mastery_level if mastery else MasteryLevel.LEARNING
        weights = dict(self.config.quiz_type_weights.get(level, {}))

        if form is not Form.ISOLATED:
            accuracy = mastery.forms[form].accuracy if mastery else 0.0
            if accuracy < WEAK_FORM_ACCURACY:
                weights[QuestionType.FORM_RECOGNITION] = (
                    weights.get(QuestionType.FORM_RECOGNITION, 0.0) * WEAK_FORM_BOOST
                )

        # Non-connecting letters draw initial like isolated and medial like final
        glyph = symbol.glyph(form)
        if any(symbol.glyph(other) == glyph for other in ALL_FORMS if other is not form):
            weights[QuestionType.FORM_RECOGNITION] = 0.0
        if not symbol.example_words:
            weights[QuestionType.WORD_CONTEXT] = 0.0
        if not self.config.word_reading_enabled:
            weights[QuestionType.WORD_READING] = 0.0

        types = list(QuestionType)
        chosen = weighted_choice(types, lambda t: weights.get(t, 0.0), self._rng)
        return chosen or QuestionType.LETTER_RECOGNITION

    # =========================================================================
    # Phase 4: construction
    # =========================================================================

    def _build(self, symbol: Symbol, form: Form, question_type: QuestionType) -> Question:
        if question_type is QuestionType.NAME_TO_LETTER:
            glyph = symbol.glyph(form)
            return self._choice_question(
                question_type, symbol, form, correct=glyph, value_fn=lambda s: s.glyph(form)
            )

        if question_type is QuestionType.FORM_RECOGNITION:
            return Question(
                type=question_type,
                symbol=symbol,
                form=form,
                options=tuple(f.display_name for f in ALL_FORMS),
                correct_answer=form.display_name,
            )

        if question_type is QuestionType.WORD_CONTEXT and symbol.example_words:
            return self._word_context_question(symbol, form)

        if question_type is QuestionType.WORD_READING:
            question = self._symbol_reading_question(symbol, form)
            if question is not None:
                return question
            logger.debug(f"No readable word contains '{symbol.id}'; asking for its name")

        return self._choice_question(
            QuestionType.LETTER_RECOGNITION,
            symbol,
            form,
            correct=symbol.name,
            value_fn=lambda s: s.name,
        )

    def _word_context_question(self, symbol: Symbol, form: Form) -> Question:
        """Show the symbol inside one of its example words."""
        chosen_word = None
        target_index = 0

        for wanted in (form, None):
            for example in symbol.example_words:
                found = self._analyzer.find_occurrences(example.word, symbol.id, wanted)
                if found:
                    chosen_word = example
                    target_index = found[0].position
                    form = found[0].form
                    break
            if chosen_word:
                break

        if chosen_word is None:
            chosen_word = symbol.example_words[0]

        return self._choice_question(
            QuestionType.WORD_CONTEXT,
            symbol,
            form,
            correct=symbol.name,
            value_fn=lambda s: s.name,
            word=QuestionWord(
                text=chosen_word.word,
                transliteration=chosen_word.transliteration,
                meaning=chosen_word.meaning,
            ),
            target_index=target_index,
        )

    def _symbol_reading_question(self, symbol: Symbol, form: Form) -> Question | None:
        """Word-reading question for a symbol already chosen in phase 2."""
        items = self._catalog.available_items(self._selector.known_symbol_ids())
        exact = []
        loose = []
        for item in items:
            found = self._analyzer.find_occurrences(item.text, symbol.id)
            exact.extend((item, occ) for occ in found if occ.form is form)
            loose.extend((item, occ) for occ in found)

        picked = choose(exact or loose, self._rng)
        if picked is None:
            return None

        item, occurrence = picked
        return self._choice_question(
            QuestionType.WORD_READING,
            symbol,
            occurrence.form,
            correct=symbol.name,
            value_fn=lambda s: s.name,
            word=QuestionWord(
                id=item.id,
                text=item.text,
                transliteration=item.transliteration,
                meaning=item.meaning,
            ),
            target_index=occurrence.position,
        )

    def _choice_question(
        self,
        question_type: QuestionType,
        symbol: Symbol,
        form: Form,
        correct: str,
        value_fn: Callable[[Symbol], str],
        word: QuestionWord | None = None,
        target_index: int | None = None,
    ) -> Question:
        distractors = self._smart_distractors(symbol, correct, value_fn, OPTION_COUNT - 1)

        # Small enabled sets: top up from the rest of the catalog in order
        for other in self._catalog.symbols:
            if len(distractors) >= OPTION_COUNT - 1:
                break
            value = value_fn(other)
            if other.id != symbol.id and value and value != correct and value not in distractors:
                distractors.append(value)

        return Question(
            type=question_type,
            symbol=symbol,
            form=form,
            options=tuple(shuffled([correct, *distractors], self._rng)),
            correct_answer=correct,
            word=word,
            target_index=target_index,
        )

    def _smart_distractors(
        self,
        symbol: Symbol,
        correct: str,
        value_fn: Callable[[Symbol], str],
        count: int,
    ) -> list[str]:
        """
        Wrong answers for a question about `symbol`.

        Symbols the learner has confused with this one come first; the rest
        are random other enabled symbols. May return fewer than `count`.
        """
        distractors: list[str] = []

        def accept(other: Symbol | None) -> None:
            if other is None or other.id == symbol.id:
                return
            value = value_fn(other)
            if value and value != correct and value not in distractors:
                distractors.append(value)

        for pair in self._store.get_confusion_pairs(symbol.id):
            if len(distractors) >= count:
                break
            accept(self._catalog.get_symbol(pair.symbol_id))

        pool = [
            s
            for s in map(self._catalog.get_symbol, self.enabled_symbol_ids())
            if s is not None and s.id != symbol.id
        ]
        attempts = 0
        while len(distractors) < count and pool and attempts < DISTRACTOR_ATTEMPTS:
            attempts += 1
            accept(choose(pool, self._rng))

        return distractors[:count]
