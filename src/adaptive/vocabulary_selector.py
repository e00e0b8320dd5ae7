"""
Progressive vocabulary selection.

Picks the next whole-word exercise from the items whose symbols the learner
already knows, balancing five factors:

- Novelty: prefer items presented fewer times
- Difficulty match: item difficulty close to the learner's level
- Frequency: prefer common words
- Spacing: prefer items whose review interval has come due
- Category variety: avoid the last few categories

The selector keeps its own presentation ledger (WordProgress per item) and a
short window of recently presented categories.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from loguru import logger

from src.adaptive.mastery_store import MasteryStore
from src.adaptive.models import WordProgress
from src.adaptive.sampling import RandomSource, default_rng, top_k_choice
from src.adaptive.schemas import (
    WordProgressionBlob,
    WordProgressRecord,
    parse_json_text,
    validate_blob,
)
from src.content.catalog import Catalog, VocabularyItem
from src.core.mastery import Clock, hours_since, utc_now

KNOWN_SYMBOL_THRESHOLD = 0.40
RECENT_ITEMS_EXCLUDED = 5
MAX_RECENT_CATEGORIES = 3
TOP_CANDIDATES = 3

# Review triggers
REVIEW_ACCURACY_BELOW = 0.8
REVIEW_AFTER_HOURS = 12.0


@dataclass(frozen=True)
class SelectionStrategy:
    """Factor weights for scoring candidate items (should sum to 1.0)."""

    novelty_weight: float = 0.30
    difficulty_weight: float = 0.20
    frequency_weight: float = 0.20
    spacing_weight: float = 0.20
    category_weight: float = 0.10


class VocabularySelector:
    """
    Chooses vocabulary items constrained by known symbols.

    Usage:
        selector = VocabularySelector(store, catalog)
        item = selector.select_next(recently_shown_ids=["ab", "bad"])
        selector.update_mastery(item.id, correct=True, response_time_ms=2300)
    """

    def __init__(
        self,
        mastery_store: MasteryStore,
        catalog: Catalog,
        strategy: SelectionStrategy | None = None,
        known_symbol_threshold: float = KNOWN_SYMBOL_THRESHOLD,
        rng: RandomSource | None = None,
        clock: Clock = utc_now,
    ):
        self._store = mastery_store
        self._catalog = catalog
        self.strategy = strategy or SelectionStrategy()
        self.known_symbol_threshold = known_symbol_threshold
        self._rng = rng or default_rng()
        self._clock = clock

        self._progress: dict[str, WordProgress] = {}
        self._recent_categories: list[str] = []

    @property
    def recent_categories(self) -> tuple[str, ...]:
        """Most recently presented categories, newest first."""
        return tuple(self._recent_categories)

    # =========================================================================
    # Selection
    # =========================================================================

    def known_symbol_ids(self) -> list[str]:
        """Catalog symbols whose overall mastery reaches the threshold."""
        return [
            sid
            for sid in self._catalog.symbol_ids()
            if sid in self._store
            and self._store.get_overall_mastery(sid) >= self.known_symbol_threshold
        ]

    def select_next(self, recently_shown_ids: Sequence[str] = ()) -> VocabularyItem | None:
        """
        Select the next vocabulary item to present.

        Args:
            recently_shown_ids: Item ids shown so far, oldest first; the last
                five are avoided unless nothing else is available

        Returns:
            The chosen item, or None if no item is readable with known symbols
        """
        known = self.known_symbol_ids()
        available = self._catalog.available_items(known)
        if not available:
            logger.debug(f"No vocabulary available for {len(known)} known symbols")
            return None

        recent = set(recently_shown_ids[-RECENT_ITEMS_EXCLUDED:])
        candidates = [item for item in available if item.id not in recent] or available

        now = self._clock()
        user_level = self._user_level(known)
        chosen = top_k_choice(
            candidates,
            lambda item: self._score(item, user_level, now),
            self._rng,
            k=TOP_CANDIDATES,
        )
        if chosen is None:
            return None

        self._remember_category(chosen.category)
        logger.debug(
            f"Selected '{chosen.id}' from {len(candidates)} candidates (level {user_level})"
        )
        return chosen

    def _score(self, item: VocabularyItem, user_level: int, now: datetime) -> float:
        s = self.strategy
        progress = self._progress.get(item.id)

        novelty = max(0.0, 1 - progress.times_presented / 10) if progress else 1.0
        difficulty = 1 - abs(item.difficulty - user_level) / 3
        frequency = item.frequency / 5
        spacing = self._spacing_score(progress, now)
        category = 0.0 if item.category in self._recent_categories else 1.0

        return (
            novelty * s.novelty_weight
            + difficulty * s.difficulty_weight
            + frequency * s.frequency_weight
            + spacing * s.spacing_weight
            + category * s.category_weight
        )

    def _user_level(self, known_ids: Sequence[str]) -> int:
        """Map mean mastery of known symbols onto difficulty 1-3."""
        total = sum(self._store.get_overall_mastery(sid) for sid in known_ids)
        average = total / max(1, len(known_ids))
        if average < 0.6:
            return 1
        if average < 0.85:
            return 2
        return 3

    @staticmethod
    def _spacing_score(progress: WordProgress | None, now: datetime) -> float:
        """
        Triangular spacing score around an accuracy-dependent interval.

        Optimal interval is 24h above 80% accuracy, 12h above 60%, else 6h.
        Rises to 1 approaching the interval, holds for one interval, then
        decays toward 0.5.
        """
        if progress is None:
            return 1.0

        accuracy = progress.times_correct / max(1, progress.times_presented)
        optimal = 24.0 if accuracy > 0.8 else 12.0 if accuracy > 0.6 else 6.0
        ratio = hours_since(progress.last_seen, now) / optimal

        if ratio < 1:
            return ratio
        if ratio < 2:
            return 1.0
        return max(0.5, 1 - (ratio - 2) / 10)

    def _remember_category(self, category: str) -> None:
        self._recent_categories = [category, *self._recent_categories][:MAX_RECENT_CATEGORIES]

    # =========================================================================
    # Ledger
    # =========================================================================

    def update_mastery(
        self,
        word_id: str,
        correct: bool,
        response_time_ms: float,
        confused_with_id: str | None = None,
    ) -> None:
        """
        Record a presentation outcome for an item.

        Args:
            word_id: Item that was presented
            correct: Whether the learner answered correctly
            response_time_ms: Latency sample folded into the running mean
            confused_with_id: Item the learner mistook it for, if any
        """
        now = self._clock()
        progress = self._progress.get(word_id)

        if progress is None:
            self._progress[word_id] = WordProgress(
                word_id=word_id,
                last_seen=now,
                times_presented=1,
                times_correct=1 if correct else 0,
                average_response_time=response_time_ms,
                confused_with=[confused_with_id] if confused_with_id else [],
            )
            return

        n = progress.times_presented
        progress.average_response_time = (progress.average_response_time * n + response_time_ms) / (n + 1)
        progress.times_presented += 1
        if correct:
            progress.times_correct += 1
        progress.last_seen = now

        if confused_with_id and confused_with_id not in progress.confused_with:
            progress.confused_with.append(confused_with_id)

    def get_progress(self, word_id: str) -> WordProgress | None:
        progress = self._progress.get(word_id)
        return progress.copy() if progress else None

    def get_items_for_review(self, limit: int = 5) -> list[VocabularyItem]:
        """
        Seen items that are due: accuracy below 80% or unseen for 12+ hours.

        Sorted by ascending accuracy (weakest first).
        """
        now = self._clock()
        due = []
        for item in self._catalog.available_items(self.known_symbol_ids()):
            progress = self._progress.get(item.id)
            if progress is None:
                continue
            if (
                progress.accuracy < REVIEW_ACCURACY_BELOW
                or hours_since(progress.last_seen, now) > REVIEW_AFTER_HOURS
            ):
                due.append((progress.accuracy, item))

        due.sort(key=lambda pair: pair[0])
        return [item for _, item in due[: max(0, limit)]]

    # =========================================================================
    # Serialization
    # =========================================================================

    def serialize(self) -> dict[str, Any]:
        """Word-progression blob (camelCase, ISO-8601 timestamps)."""
        blob = WordProgressionBlob(
            word_mastery=[WordProgressRecord.from_domain(p) for p in self._progress.values()],
            recent_categories=list(self._recent_categories),
        )
        return blob.to_wire()

    def to_json(self) -> str:
        return json.dumps(self.serialize(), ensure_ascii=False)

    def deserialize(self, blob: Any) -> None:
        """
        Replace the ledger with a word-progression blob.

        Accepts decoded JSON or JSON text. The current state is kept when
        the blob is invalid.

        Raises:
            ProgressImportError: If the blob does not match the schema
        """
        if isinstance(blob, (str, bytes)):
            blob = parse_json_text(blob)
        parsed: WordProgressionBlob = validate_blob(
            WordProgressionBlob, blob, "word progression data"
        )

        self._progress = {record.word_id: record.to_domain() for record in parsed.word_mastery}
        self._recent_categories = list(parsed.recent_categories[:MAX_RECENT_CATEGORIES])
        logger.debug(f"Restored word progression for {len(self._progress)} items")

    def reset(self) -> None:
        self._progress.clear()
        self._recent_categories.clear()
