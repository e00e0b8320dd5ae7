"""
Data models for the adaptive drilling engine.

Mastery records are plain mutable dataclasses owned by their store; the
store hands out deep copies so callers cannot mutate live state. Questions
are frozen value objects.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from src.content.catalog import Symbol
from src.core.mastery import (
    ALL_FORMS,
    Form,
    MasteryLevel,
    blended_accuracy,
)


class QuestionType(str, Enum):
    """Question formats the generator can emit."""

    LETTER_RECOGNITION = "letterRecognition"
    NAME_TO_LETTER = "nameToLetter"
    FORM_RECOGNITION = "formRecognition"
    WORD_CONTEXT = "wordContext"
    WORD_READING = "wordReading"

    @property
    def display_name(self) -> str:
        return {
            QuestionType.LETTER_RECOGNITION: "Which letter is this?",
            QuestionType.NAME_TO_LETTER: "Find the letter",
            QuestionType.FORM_RECOGNITION: "Which form is this?",
            QuestionType.WORD_CONTEXT: "Letter in a word",
            QuestionType.WORD_READING: "Read the word",
        }[self]


class Context(str, Enum):
    """Where an attempt happened."""

    STANDALONE = "standalone"
    IN_WORD = "in_word"


# ============================================================================
# Symbol mastery
# ============================================================================


@dataclass
class FormMastery:
    """Attempt history for one (symbol, form) pair."""

    form: Form
    last_seen: datetime
    exposures: int = 0
    correct_answers: int = 0
    recent_accuracy: list[int] = field(default_factory=list)

    @property
    def accuracy(self) -> float:
        """Blended recent/lifetime accuracy (0 when never attempted)."""
        return blended_accuracy(self.recent_accuracy, self.correct_answers, self.exposures)


@dataclass
class ConfusionPair:
    """Recorded tendency to mistake the owning symbol for another one."""

    symbol_id: str
    form: Form | None = None
    count: int = 1


@dataclass
class ContextualMastery:
    in_words: float = 0.0
    standalone: float = 0.0


@dataclass
class SymbolMastery:
    """
    Proficiency estimate for one symbol across its four forms.

    `overall_mastery`, `mastery_level` and `contextual_mastery` are derived
    and recomputed by the MasteryStore after every attempt.
    """

    symbol_id: str
    forms: dict[Form, FormMastery]
    overall_mastery: float = 0.0
    mastery_level: MasteryLevel = MasteryLevel.LEARNING
    confused_with: list[ConfusionPair] = field(default_factory=list)
    contextual_mastery: ContextualMastery = field(default_factory=ContextualMastery)

    @classmethod
    def new(cls, symbol_id: str, now: datetime) -> SymbolMastery:
        """Zero-state record with all four forms present."""
        return cls(
            symbol_id=symbol_id,
            forms={form: FormMastery(form=form, last_seen=now) for form in ALL_FORMS},
        )

    @property
    def total_exposures(self) -> int:
        return sum(fm.exposures for fm in self.forms.values())

    @property
    def total_correct(self) -> int:
        return sum(fm.correct_answers for fm in self.forms.values())

    @property
    def lifetime_accuracy(self) -> float:
        """Plain correct/exposures across all forms."""
        total = self.total_exposures
        return self.total_correct / total if total else 0.0

    def copy(self) -> SymbolMastery:
        return copy.deepcopy(self)


# ============================================================================
# Word mastery
# ============================================================================


@dataclass
class WordMastery:
    """Proficiency estimate for one vocabulary item."""

    word_id: str
    last_seen: datetime
    exposures: int = 0
    correct_answers: int = 0
    recent_accuracy: list[int] = field(default_factory=list)
    average_response_time: float = 0.0
    overall_mastery: float = 0.0
    mastery_level: MasteryLevel = MasteryLevel.LEARNING

    def copy(self) -> WordMastery:
        return copy.deepcopy(self)


@dataclass(frozen=True)
class WordStats:
    """Summary over a set of vocabulary items."""

    practiced: int
    mastered: int
    total: int
    average_mastery: float


@dataclass
class WordProgress:
    """The vocabulary selector's presentation ledger for one item."""

    word_id: str
    last_seen: datetime
    times_presented: int = 0
    times_correct: int = 0
    average_response_time: float = 0.0
    confused_with: list[str] = field(default_factory=list)

    @property
    def accuracy(self) -> float:
        if self.times_presented == 0:
            return 0.0
        return self.times_correct / self.times_presented

    def copy(self) -> WordProgress:
        return copy.deepcopy(self)


# ============================================================================
# Analysis and questions
# ============================================================================


@dataclass(frozen=True)
class SymbolOccurrence:
    """One tracked character found in a string."""

    symbol_id: str
    form: Form
    position: int
    character: str


@dataclass(frozen=True)
class QuestionWord:
    """Word shown alongside a word-based question."""

    text: str
    transliteration: str
    meaning: str
    id: str | None = None


@dataclass(frozen=True)
class Question:
    """
    One emitted multiple-choice question.

    `options` always holds four strings, one of which is `correct_answer`.
    `symbol` is None only for whole-word questions without a target symbol.
    """

    type: QuestionType
    options: tuple[str, ...]
    correct_answer: str
    symbol: Symbol | None = None
    form: Form | None = None
    word: QuestionWord | None = None
    target_index: int | None = None

    @property
    def symbol_id(self) -> str | None:
        return self.symbol.id if self.symbol else None

    def is_correct(self, answer: str) -> bool:
        return answer == self.correct_answer
