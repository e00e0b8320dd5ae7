"""
Per-symbol mastery tracking.

The MasteryStore turns a stream of right/wrong attempts into a per-symbol,
per-form proficiency estimate with confusion tracking. It is the only code
allowed to mutate SymbolMastery records; accessors return copies.

Scoring:
- Form accuracy: 0.7 x recent window + 0.3 x lifetime accuracy
- Overall mastery: form-weighted mean over attempted forms, each weight
  scaled by that form's recency bonus
- Level thresholds: 0.60 familiar, 0.80 proficient, 0.95 mastered
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from loguru import logger

from src.adaptive.models import (
    ConfusionPair,
    Context,
    FormMastery,
    SymbolMastery,
)
from src.adaptive.schemas import (
    MasteryBlob,
    SymbolMasteryRecord,
    parse_json_text,
    validate_blob,
)
from src.core.mastery import (
    ALL_FORMS,
    FORM_WEIGHTS,
    Clock,
    Form,
    MasteryLevel,
    push_outcome,
    recency_bonus,
    utc_now,
)


@dataclass(frozen=True)
class PracticeTarget:
    """A (symbol, form) pair ranked by practice urgency (lower is more urgent)."""

    symbol_id: str
    form: Form
    score: float


class MasteryStore:
    """
    Keyed container of SymbolMastery records.

    Usage:
        store = MasteryStore()
        store.record_attempt("beh", Form.INITIAL, correct=False,
                             confused_with_symbol_id="peh")
        weakest = store.get_weakest_form("beh")
    """

    def __init__(
        self,
        records: dict[str, SymbolMastery] | None = None,
        clock: Clock = utc_now,
    ):
        self._records: dict[str, SymbolMastery] = dict(records or {})
        self._clock = clock

    def __contains__(self, symbol_id: object) -> bool:
        return symbol_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    # =========================================================================
    # Mutation
    # =========================================================================

    def record_attempt(
        self,
        symbol_id: str,
        form: Form | str,
        correct: bool,
        context: Context | str = Context.STANDALONE,
        confused_with_symbol_id: str | None = None,
        confused_with_form: Form | str | None = None,
    ) -> None:
        """
        Record one answer for a (symbol, form) pair.

        Args:
            symbol_id: Symbol that was tested
            form: Form that was shown
            correct: Whether the learner answered correctly
            context: Where the symbol was shown (standalone or inside a word)
            confused_with_symbol_id: Symbol the learner picked instead, if wrong
            confused_with_form: Form of the confused symbol, if known
        """
        now = self._clock()
        form = Form(form)
        context = _coerce_context(context)
        confused_form = Form(confused_with_form) if confused_with_form else None

        mastery = self._records.get(symbol_id)
        if mastery is None:
            mastery = SymbolMastery.new(symbol_id, now)
            self._records[symbol_id] = mastery
            logger.debug(f"Started mastery record for '{symbol_id}'")

        form_mastery = mastery.forms[form]
        form_mastery.exposures += 1
        if correct:
            form_mastery.correct_answers += 1
        form_mastery.last_seen = now
        push_outcome(form_mastery.recent_accuracy, correct)

        if not correct and confused_with_symbol_id:
            self._add_confusion(mastery, confused_with_symbol_id, confused_form)

        # Both context buckets hold the aggregate ratio across all forms
        ratio = mastery.lifetime_accuracy
        if context is Context.STANDALONE:
            mastery.contextual_mastery.standalone = ratio
        else:
            mastery.contextual_mastery.in_words = ratio

        self._update_overall(mastery, now)

    @staticmethod
    def _add_confusion(mastery: SymbolMastery, other_id: str, other_form: Form | None) -> None:
        for pair in mastery.confused_with:
            if pair.symbol_id == other_id and pair.form == other_form:
                pair.count += 1
                return
        mastery.confused_with.append(ConfusionPair(symbol_id=other_id, form=other_form))

    @staticmethod
    def _update_overall(mastery: SymbolMastery, now: datetime) -> None:
        weighted_sum = 0.0
        total_weight = 0.0

        for form in ALL_FORMS:
            fm = mastery.forms[form]
            if fm.exposures == 0:
                continue
            weight = FORM_WEIGHTS[form] * recency_bonus(fm.last_seen, now)
            weighted_sum += fm.accuracy * weight
            total_weight += weight

        mastery.overall_mastery = weighted_sum / total_weight if total_weight > 0 else 0.0
        mastery.mastery_level = MasteryLevel.from_score(mastery.overall_mastery)

    # =========================================================================
    # Queries
    # =========================================================================

    def get_symbol_mastery(self, symbol_id: str) -> SymbolMastery | None:
        """Copy of the symbol's record, or None if never attempted."""
        mastery = self._records.get(symbol_id)
        return mastery.copy() if mastery else None

    def get_form_mastery(self, symbol_id: str, form: Form | str) -> FormMastery | None:
        mastery = self._records.get(symbol_id)
        if mastery is None:
            return None
        return mastery.copy().forms[Form(form)]

    def get_overall_mastery(self, symbol_id: str) -> float:
        """Overall mastery, 0.0 for symbols never attempted."""
        mastery = self._records.get(symbol_id)
        return mastery.overall_mastery if mastery else 0.0

    def get_weakest_form(self, symbol_id: str) -> Form | None:
        """
        Form with the lowest blended accuracy.

        Ties go to the earlier form in isolated, initial, medial, final order;
        a symbol whose every form is perfect reports isolated.
        """
        mastery = self._records.get(symbol_id)
        if mastery is None:
            return None

        weakest = Form.ISOLATED
        lowest = 1.0
        for form in ALL_FORMS:
            accuracy = mastery.forms[form].accuracy
            if accuracy < lowest:
                lowest = accuracy
                weakest = form
        return weakest

    def get_symbols_needing_practice(self, limit: int = 5) -> list[PracticeTarget]:
        """
        Rank every form of every attempted symbol by practice urgency.

        Score = accuracy x recency bonus, ascending. Forms never attempted
        score 0 and therefore rank first.

        Args:
            limit: Maximum number of targets to return

        Returns:
            PracticeTargets, most urgent first
        """
        now = self._clock()
        candidates = [
            PracticeTarget(
                symbol_id=symbol_id,
                form=form,
                score=mastery.forms[form].accuracy
                * recency_bonus(mastery.forms[form].last_seen, now),
            )
            for symbol_id, mastery in self._records.items()
            for form in ALL_FORMS
        ]
        candidates.sort(key=lambda t: t.score)
        return candidates[: max(0, limit)]

    def get_confusion_pairs(self, symbol_id: str) -> list[ConfusionPair]:
        mastery = self._records.get(symbol_id)
        if mastery is None:
            return []
        return mastery.copy().confused_with

    def symbol_ids(self) -> list[str]:
        return list(self._records)

    def get_all(self) -> dict[str, SymbolMastery]:
        """Copies of every record, keyed by symbol id."""
        return {sid: m.copy() for sid, m in self._records.items()}

    # =========================================================================
    # Serialization
    # =========================================================================

    def serialize(self) -> dict[str, Any]:
        """Mastery blob (camelCase, ISO-8601 timestamps)."""
        blob = MasteryBlob({sid: SymbolMasteryRecord.from_domain(m) for sid, m in self._records.items()})
        return blob.to_wire()

    def to_json(self) -> str:
        return json.dumps(self.serialize(), ensure_ascii=False)

    @classmethod
    def restore(cls, blob: Any, clock: Clock = utc_now) -> MasteryStore:
        """
        Build a store from a mastery blob.

        The whole blob is validated before any record is built.

        Raises:
            ProgressImportError: If the blob does not match the schema
        """
        parsed: MasteryBlob = validate_blob(MasteryBlob, blob, "mastery data")
        records = {sid: record.to_domain() for sid, record in parsed.root.items()}
        logger.debug(f"Restored mastery for {len(records)} symbols")
        return cls(records, clock=clock)

    @classmethod
    def from_json(cls, text: str | bytes, clock: Clock = utc_now) -> MasteryStore:
        return cls.restore(parse_json_text(text), clock=clock)


def _coerce_context(context: Context | str) -> Context:
    if isinstance(context, Context):
        return context
    # Browser-era blobs and callers spell it "inWord"
    if context in ("inWord", "in_word", "inWords"):
        return Context.IN_WORD
    return Context(context)
