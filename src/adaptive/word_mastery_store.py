"""
Whole-word mastery tracking.

Same accuracy, recency and level arithmetic as the symbol store, applied to
vocabulary items, plus a running mean of response latency.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from loguru import logger

from src.adaptive.models import WordMastery, WordStats
from src.adaptive.schemas import (
    WordMasteryBlob,
    WordMasteryRecord,
    parse_json_text,
    validate_blob,
)
from src.core.mastery import (
    Clock,
    MasteryLevel,
    blended_accuracy,
    push_outcome,
    recency_bonus,
    utc_now,
)

# Items need this many exposures before they count toward average mastery
MIN_EXPOSURES_FOR_AVERAGE = 3


@dataclass(frozen=True)
class WordPracticeTarget:
    word_id: str
    score: float


class WordMasteryStore:
    """Keyed container of WordMastery records."""

    def __init__(
        self,
        records: dict[str, WordMastery] | None = None,
        clock: Clock = utc_now,
    ):
        self._records: dict[str, WordMastery] = dict(records or {})
        self._clock = clock

    def __contains__(self, word_id: object) -> bool:
        return word_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    def record_attempt(
        self,
        word_id: str,
        correct: bool,
        response_time_ms: float | None = None,
    ) -> None:
        """
        Record one answer for a vocabulary item.

        Args:
            word_id: Vocabulary item id
            correct: Whether the learner answered correctly
            response_time_ms: Optional latency sample folded into the running mean
        """
        now = self._clock()
        mastery = self._records.get(word_id)
        if mastery is None:
            mastery = WordMastery(word_id=word_id, last_seen=now)
            self._records[word_id] = mastery

        mastery.exposures += 1
        if correct:
            mastery.correct_answers += 1
        mastery.last_seen = now
        push_outcome(mastery.recent_accuracy, correct)

        if response_time_ms is not None:
            n = mastery.exposures
            mastery.average_response_time = (
                mastery.average_response_time * (n - 1) + response_time_ms
            ) / n

        accuracy = blended_accuracy(
            mastery.recent_accuracy, mastery.correct_answers, mastery.exposures
        )
        mastery.overall_mastery = accuracy * recency_bonus(mastery.last_seen, now)
        mastery.mastery_level = MasteryLevel.from_score(mastery.overall_mastery)

    def get_word_mastery(self, word_id: str) -> WordMastery | None:
        mastery = self._records.get(word_id)
        return mastery.copy() if mastery else None

    def get_items_needing_practice(
        self, word_ids: Iterable[str], limit: int = 10
    ) -> list[WordPracticeTarget]:
        """
        Rank candidate items by practice urgency (ascending score).

        Never-seen items score 0 and sort first; seen items score
        overall mastery x recency bonus.
        """
        now = self._clock()
        candidates = []
        for word_id in word_ids:
            mastery = self._records.get(word_id)
            if mastery is None:
                score = 0.0
            else:
                score = mastery.overall_mastery * recency_bonus(mastery.last_seen, now)
            candidates.append(WordPracticeTarget(word_id=word_id, score=score))

        candidates.sort(key=lambda t: t.score)
        return candidates[: max(0, limit)]

    def get_average_mastery(self, word_ids: Iterable[str]) -> float:
        """Mean overall mastery of items with at least 3 exposures (0 if none)."""
        scores = [
            m.overall_mastery
            for m in (self._records.get(wid) for wid in word_ids)
            if m is not None and m.exposures >= MIN_EXPOSURES_FOR_AVERAGE
        ]
        return sum(scores) / len(scores) if scores else 0.0

    def get_stats(self, word_ids: Iterable[str]) -> WordStats:
        ids = list(word_ids)
        practiced = [
            m for m in (self._records.get(wid) for wid in ids)
            if m is not None and m.exposures > 0
        ]
        mastered = sum(1 for m in practiced if m.mastery_level >= MasteryLevel.PROFICIENT)
        average = (
            sum(m.overall_mastery for m in practiced) / len(practiced) if practiced else 0.0
        )
        return WordStats(
            practiced=len(practiced),
            mastered=mastered,
            total=len(ids),
            average_mastery=average,
        )

    # =========================================================================
    # Serialization
    # =========================================================================

    def serialize(self) -> dict[str, Any]:
        blob = WordMasteryBlob(
            {wid: WordMasteryRecord.from_domain(m) for wid, m in self._records.items()}
        )
        return blob.to_wire()

    def to_json(self) -> str:
        return json.dumps(self.serialize(), ensure_ascii=False)

    @classmethod
    def restore(cls, blob: Any, clock: Clock = utc_now) -> WordMasteryStore:
        """
        Raises:
            ProgressImportError: If the blob does not match the schema
        """
        parsed: WordMasteryBlob = validate_blob(WordMasteryBlob, blob, "word mastery data")
        records = {wid: record.to_domain() for wid, record in parsed.root.items()}
        logger.debug(f"Restored word mastery for {len(records)} items")
        return cls(records, clock=clock)

    @classmethod
    def from_json(cls, text: str | bytes, clock: Clock = utc_now) -> WordMasteryStore:
        return cls.restore(parse_json_text(text), clock=clock)
