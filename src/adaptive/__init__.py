"""
Adaptive Drilling Engine.

Components:
- MasteryStore: Per-symbol, per-form proficiency with confusion tracking
- WordMasteryStore: Proficiency for whole vocabulary items
- SymbolAnalyzer: Splits words into (symbol, form) occurrences
- VocabularySelector: Picks the next word from items the learner can read
- ProgressionPolicy: Unlocks symbol groups as mastery grows
- QuestionGenerator: Emits the next multiple-choice question
"""
from src.adaptive.mastery_store import MasteryStore, PracticeTarget
from src.adaptive.models import (
    ConfusionPair,
    Context,
    ContextualMastery,
    FormMastery,
    Question,
    QuestionType,
    QuestionWord,
    SymbolMastery,
    SymbolOccurrence,
    WordMastery,
    WordProgress,
    WordStats,
)
from src.adaptive.progression import ProgressionPolicy
from src.adaptive.question_generator import (
    DEFAULT_QUIZ_TYPE_WEIGHTS,
    GeneratorConfig,
    QuestionGenerator,
)
from src.adaptive.schemas import ProgressImportError
from src.adaptive.symbol_analyzer import SymbolAnalyzer
from src.adaptive.vocabulary_selector import SelectionStrategy, VocabularySelector
from src.adaptive.word_mastery_store import WordMasteryStore, WordPracticeTarget

__all__ = [
    # Engine components
    "MasteryStore",
    "WordMasteryStore",
    "SymbolAnalyzer",
    "VocabularySelector",
    "ProgressionPolicy",
    "QuestionGenerator",
    # Configuration
    "GeneratorConfig",
    "SelectionStrategy",
    "DEFAULT_QUIZ_TYPE_WEIGHTS",
    # Data models
    "FormMastery",
    "SymbolMastery",
    "ConfusionPair",
    "ContextualMastery",
    "WordMastery",
    "WordProgress",
    "WordStats",
    "SymbolOccurrence",
    "Question",
    "QuestionWord",
    "PracticeTarget",
    "WordPracticeTarget",
    # Enums
    "QuestionType",
    "Context",
    # Errors
    "ProgressImportError",
]
