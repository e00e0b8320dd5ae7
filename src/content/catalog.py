"""
Reference catalog: alphabet symbols, vocabulary items, progression groups.

The catalog is read-only. It is loaded once from the bundled JSON tables in
`src/content/data/` (or a directory named by `ALEPH_DATA_DIR`) and then passed
explicitly to every component that needs it.

Data files:
- symbols.json: the alphabet with its four positional glyphs per symbol
- vocabulary.json: whole-word exercises keyed by the symbols they require
- progression.json: ordered teaching groups of symbol ids
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger

from src.core.mastery import ALL_FORMS, Form

DEFAULT_DATA_DIR = Path(__file__).parent / "data"

SYMBOLS_FILE = "symbols.json"
VOCABULARY_FILE = "vocabulary.json"
PROGRESSION_FILE = "progression.json"

# Tatweel (kashida) pads the joined side of form glyphs in the tables
TATWEEL = "ـ"


class CatalogError(Exception):
    """Raised when a reference table is missing or inconsistent."""

    pass


@dataclass(frozen=True)
class ExampleWord:
    """A short word illustrating a symbol."""

    word: str
    transliteration: str
    meaning: str
    difficulty: int = 1

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExampleWord:
        return cls(
            word=data["word"],
            transliteration=data["transliteration"],
            meaning=data["meaning"],
            difficulty=int(data.get("difficulty", 1)),
        )


@dataclass(frozen=True)
class Symbol:
    """
    One alphabet character and its positional renderings.

    Non-connecting symbols never join to the character that follows them,
    so they have no distinct initial or medial shape.
    """

    id: str
    isolated: str
    initial: str
    medial: str
    final: str
    name: str
    native_name: str = ""
    pronunciation: str = ""
    non_connecting: bool = False
    aliases: tuple[str, ...] = ()
    example_words: tuple[ExampleWord, ...] = ()

    def glyph(self, form: Form) -> str:
        """Rendering of this symbol in the given form."""
        return getattr(self, Form(form).value)

    @property
    def glyphs(self) -> dict[Form, str]:
        return {form: self.glyph(form) for form in ALL_FORMS}

    @property
    def bare_glyphs(self) -> set[str]:
        """Form renderings with tatweel removed, plus aliases."""
        bare = {glyph.replace(TATWEEL, "") for glyph in self.glyphs.values()}
        bare.update(self.aliases)
        bare.discard("")
        return bare

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Symbol:
        return cls(
            id=data["id"],
            isolated=data["isolated"],
            initial=data["initial"],
            medial=data["medial"],
            final=data["final"],
            name=data["name"],
            native_name=data.get("native_name", ""),
            pronunciation=data.get("pronunciation", ""),
            non_connecting=bool(data.get("non_connecting", False)),
            aliases=tuple(data.get("aliases", [])),
            example_words=tuple(
                ExampleWord.from_dict(w) for w in data.get("example_words", [])
            ),
        )


@dataclass(frozen=True)
class VocabularyItem:
    """A whole-word exercise that unlocks once its symbols are known."""

    id: str
    text: str
    transliteration: str
    meaning: str
    required_symbols: tuple[str, ...]
    difficulty: int
    category: str
    frequency: int
    text_with_diacritics: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VocabularyItem:
        return cls(
            id=data["id"],
            text=data["text"],
            transliteration=data["transliteration"],
            meaning=data["meaning"],
            required_symbols=tuple(data["required_symbols"]),
            difficulty=int(data["difficulty"]),
            category=data["category"],
            frequency=int(data["frequency"]),
            text_with_diacritics=data.get("text_with_diacritics"),
        )


@dataclass
class Catalog:
    """
    Immutable-by-convention container for the reference tables.

    Symbols and vocabulary keep their file order; several selection rules
    (distractor top-up, fallbacks) depend on it.
    """

    symbols: list[Symbol]
    vocabulary: list[VocabularyItem] = field(default_factory=list)
    progression_groups: tuple[tuple[str, ...], ...] = ()

    def __post_init__(self) -> None:
        self._symbols_by_id = {s.id: s for s in self.symbols}
        self._items_by_id = {item.id: item for item in self.vocabulary}

    # =========================================================================
    # Loading
    # =========================================================================

    @classmethod
    def load(cls, data_dir: Path | str | None = None) -> Catalog:
        """
        Load the reference tables from a directory.

        Args:
            data_dir: Directory holding the three JSON tables.
                      Defaults to the bundled `src/content/data/`.

        Returns:
            Validated Catalog

        Raises:
            CatalogError: If a table is missing, malformed or inconsistent
        """
        base = Path(data_dir) if data_dir else DEFAULT_DATA_DIR

        symbols_raw = _read_table(base / SYMBOLS_FILE)
        vocabulary_raw = _read_table(base / VOCABULARY_FILE)
        progression_raw = _read_table(base / PROGRESSION_FILE)

        try:
            symbols = [Symbol.from_dict(s) for s in symbols_raw["symbols"]]
            vocabulary = [VocabularyItem.from_dict(v) for v in vocabulary_raw["items"]]
            groups = tuple(tuple(g) for g in progression_raw["groups"])
        except (KeyError, TypeError, ValueError) as e:
            raise CatalogError(f"Invalid reference data in {base}: {e}") from e

        catalog = cls(symbols=symbols, vocabulary=vocabulary, progression_groups=groups)
        catalog.validate()

        logger.info(
            f"Loaded catalog from {base}: {len(symbols)} symbols, "
            f"{len(vocabulary)} vocabulary items, {len(groups)} groups"
        )
        return catalog

    def validate(self) -> None:
        """Check cross-references between the tables."""
        if not self.symbols:
            raise CatalogError("Catalog has no symbols")
        if len(self._symbols_by_id) != len(self.symbols):
            raise CatalogError("Duplicate symbol ids in catalog")

        for item in self.vocabulary:
            unknown = [sid for sid in item.required_symbols if sid not in self._symbols_by_id]
            if unknown:
                raise CatalogError(
                    f"Vocabulary item '{item.id}' requires unknown symbols: {unknown}"
                )

        for index, group in enumerate(self.progression_groups, start=1):
            unknown = [sid for sid in group if sid not in self._symbols_by_id]
            if unknown:
                raise CatalogError(f"Progression group {index} has unknown symbols: {unknown}")

    # =========================================================================
    # Lookups
    # =========================================================================

    def get_symbol(self, symbol_id: str) -> Symbol | None:
        return self._symbols_by_id.get(symbol_id)

    def get_item(self, item_id: str) -> VocabularyItem | None:
        return self._items_by_id.get(item_id)

    def symbol_ids(self) -> list[str]:
        return [s.id for s in self.symbols]

    def available_items(self, known_symbol_ids: Iterable[str]) -> list[VocabularyItem]:
        """Vocabulary items whose every required symbol is known."""
        known = set(known_symbol_ids)
        return [
            item
            for item in self.vocabulary
            if all(sid in known for sid in item.required_symbols)
        ]

    @staticmethod
    def items_by_difficulty(
        items: Iterable[VocabularyItem], difficulty: int
    ) -> list[VocabularyItem]:
        return [item for item in items if item.difficulty == difficulty]

    @staticmethod
    def items_by_category(
        items: Iterable[VocabularyItem], category: str
    ) -> list[VocabularyItem]:
        return [item for item in items if item.category == category]

    def categories(self) -> list[str]:
        """Unique categories in first-seen order."""
        return list(dict.fromkeys(item.category for item in self.vocabulary))


def _read_table(path: Path) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise CatalogError(f"Reference table not found: {path}") from e
    except json.JSONDecodeError as e:
        raise CatalogError(f"Reference table is not valid JSON: {path}: {e}") from e

    if not isinstance(data, dict):
        raise CatalogError(f"Reference table must be a JSON object: {path}")
    return data
