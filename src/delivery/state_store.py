"""
JSON State Store for aleph.

Provides portable persistence for:
- Symbol mastery (mastery.json)
- Whole-word mastery (word_mastery.json)
- Vocabulary selector ledger (word_progression.json)

Default location: ~/.aleph/ (override with ALEPH_STATE_DIR)
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from loguru import logger

from src.adaptive.mastery_store import MasteryStore
from src.adaptive.schemas import ProgressImportError
from src.adaptive.vocabulary_selector import VocabularySelector
from src.adaptive.word_mastery_store import WordMasteryStore
from src.core.mastery import Clock, utc_now

MASTERY_FILE = "mastery.json"
WORD_MASTERY_FILE = "word_mastery.json"
WORD_PROGRESSION_FILE = "word_progression.json"


class StateStore:
    """
    File-backed persistence of the learner state.

    Missing files load as empty state. Corrupt files raise
    ProgressImportError and are left on disk untouched.
    """

    DEFAULT_STATE_DIR = Path.home() / ".aleph"

    def __init__(self, state_dir: Path | None = None, clock: Clock = utc_now):
        """
        Initialize the state store.

        Args:
            state_dir: Directory for the JSON files (defaults to ~/.aleph)
            clock: Clock handed to restored stores
        """
        self.state_dir = Path(state_dir) if state_dir else self.DEFAULT_STATE_DIR
        self.state_dir.mkdir(parents=True, exist_ok=True)
        self._clock = clock

        logger.debug(f"StateStore initialized at {self.state_dir}")

    @property
    def mastery_path(self) -> Path:
        return self.state_dir / MASTERY_FILE

    @property
    def word_mastery_path(self) -> Path:
        return self.state_dir / WORD_MASTERY_FILE

    @property
    def word_progression_path(self) -> Path:
        return self.state_dir / WORD_PROGRESSION_FILE

    # =========================================================================
    # Symbol mastery
    # =========================================================================

    def load_mastery(self) -> MasteryStore:
        text = self._read(self.mastery_path)
        if text is None:
            return MasteryStore(clock=self._clock)
        store = MasteryStore.from_json(text, clock=self._clock)
        logger.info(f"Loaded mastery for {len(store)} symbols")
        return store

    def save_mastery(self, store: MasteryStore) -> Path:
        return self._write(self.mastery_path, store.serialize())

    # =========================================================================
    # Word mastery
    # =========================================================================

    def load_word_mastery(self) -> WordMasteryStore:
        text = self._read(self.word_mastery_path)
        if text is None:
            return WordMasteryStore(clock=self._clock)
        return WordMasteryStore.from_json(text, clock=self._clock)

    def save_word_mastery(self, store: WordMasteryStore) -> Path:
        return self._write(self.word_mastery_path, store.serialize())

    # =========================================================================
    # Word progression
    # =========================================================================

    def load_word_progression(self, selector: VocabularySelector) -> bool:
        """Load the selector ledger into `selector`; False when nothing is saved."""
        text = self._read(self.word_progression_path)
        if text is None:
            return False
        selector.deserialize(text)
        return True

    def save_word_progression(self, selector: VocabularySelector) -> Path:
        return self._write(self.word_progression_path, selector.serialize())

    # =========================================================================
    # Housekeeping
    # =========================================================================

    def reset(self) -> int:
        """Delete all saved state. Returns the number of files removed."""
        removed = 0
        for path in (self.mastery_path, self.word_mastery_path, self.word_progression_path):
            if path.exists():
                path.unlink()
                removed += 1
        logger.info(f"Reset learner state ({removed} files removed)")
        return removed

    def has_state(self) -> bool:
        return self.mastery_path.exists()

    @staticmethod
    def _read(path: Path) -> str | None:
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise ProgressImportError(f"Saved state is not UTF-8 text: {path}") from e

    @staticmethod
    def _write(path: Path, data: Any) -> Path:
        tmp = path.with_suffix(path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp, path)
        return path
