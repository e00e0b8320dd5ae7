"""
Wire schemas for persisted learner state.

Field names are snake_case in Python and camelCase on the wire
(`correct_answers` <-> `correctAnswers`). Timestamps are written as
ISO-8601 UTC strings with millisecond precision and a trailing `Z`.

Blobs:
- MasteryBlob: symbol id -> SymbolMasteryRecord
- WordMasteryBlob: vocabulary id -> WordMasteryRecord
- WordProgressionBlob: the vocabulary selector's ledger and category window
- ExportEnvelope: versioned wrapper used by export/import
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Annotated, Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    RootModel,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from src.adaptive.models import (
    ConfusionPair,
    ContextualMastery,
    FormMastery,
    SymbolMastery,
    WordMastery,
    WordProgress,
)
from src.core.mastery import (
    ALL_FORMS,
    MAX_RECENT_ATTEMPTS,
    Form,
    MasteryLevel,
    ensure_aware,
    to_iso,
)

IsoDatetime = Annotated[datetime, PlainSerializer(to_iso, return_type=str)]
Outcome = Annotated[int, Field(ge=0, le=1)]


class ProgressImportError(ValueError):
    """Raised when persisted learner state cannot be parsed or validated."""

    pass


def parse_json_text(text: str | bytes) -> Any:
    """json.loads that reports failures as ProgressImportError."""
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise ProgressImportError(f"Invalid JSON: {e}") from e
    except UnicodeDecodeError as e:
        raise ProgressImportError(f"Progress data is not UTF-8 text: {e}") from e


class WireModel(BaseModel):
    """Base for camelCase wire records."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> Any:
        return self.model_dump(mode="json", by_alias=True)


# ============================================================================
# Symbol mastery
# ============================================================================


class FormMasteryRecord(WireModel):
    form: Form
    exposures: int = Field(0, ge=0)
    correct_answers: int = Field(0, ge=0)
    recent_accuracy: list[Outcome] = Field(default_factory=list, max_length=MAX_RECENT_ATTEMPTS)
    last_seen: IsoDatetime

    @model_validator(mode="after")
    def _check_counts(self) -> FormMasteryRecord:
        if self.correct_answers > self.exposures:
            raise ValueError("correctAnswers exceeds exposures")
        return self

    @classmethod
    def from_domain(cls, fm: FormMastery) -> FormMasteryRecord:
        return cls(
            form=fm.form,
            exposures=fm.exposures,
            correct_answers=fm.correct_answers,
            recent_accuracy=list(fm.recent_accuracy),
            last_seen=fm.last_seen,
        )

    def to_domain(self) -> FormMastery:
        return FormMastery(
            form=self.form,
            last_seen=ensure_aware(self.last_seen),
            exposures=self.exposures,
            correct_answers=self.correct_answers,
            recent_accuracy=list(self.recent_accuracy),
        )


class ConfusionRecord(WireModel):
    letter_id: str
    form: Form | None = None
    count: int = Field(1, ge=1)


class ContextualRecord(WireModel):
    in_words: float = Field(0.0, ge=0.0)
    standalone: float = Field(0.0, ge=0.0)


class SymbolMasteryRecord(WireModel):
    letter_id: str
    forms: dict[str, FormMasteryRecord]
    overall_mastery: float = Field(0.0, ge=0.0)
    mastery_level: int = Field(0, ge=0, le=3)
    confused_with: list[ConfusionRecord] = Field(default_factory=list)
    contextual_mastery: ContextualRecord = Field(default_factory=ContextualRecord)

    @field_validator("forms")
    @classmethod
    def _known_forms(cls, forms: dict[str, FormMasteryRecord]) -> dict[str, FormMasteryRecord]:
        valid = {f.value for f in ALL_FORMS}
        unknown = set(forms) - valid
        if unknown:
            raise ValueError(f"unknown forms: {sorted(unknown)}")
        if not forms:
            raise ValueError("at least one form is required")
        return forms

    @classmethod
    def from_domain(cls, m: SymbolMastery) -> SymbolMasteryRecord:
        return cls(
            letter_id=m.symbol_id,
            forms={form.value: FormMasteryRecord.from_domain(m.forms[form]) for form in ALL_FORMS},
            overall_mastery=m.overall_mastery,
            mastery_level=int(m.mastery_level),
            confused_with=[
                ConfusionRecord(letter_id=cp.symbol_id, form=cp.form, count=cp.count)
                for cp in m.confused_with
            ],
            contextual_mastery=ContextualRecord(
                in_words=m.contextual_mastery.in_words,
                standalone=m.contextual_mastery.standalone,
            ),
        )

    def to_domain(self) -> SymbolMastery:
        """
        Rebuild the domain record.

        Forms missing from the blob are created at zero state, stamped with
        the most recent timestamp among the forms that are present.
        """
        present = {Form(key): record.to_domain() for key, record in self.forms.items()}
        stamp = max(fm.last_seen for fm in present.values())
        forms = {
            form: present.get(form) or FormMastery(form=form, last_seen=stamp)
            for form in ALL_FORMS
        }
        return SymbolMastery(
            symbol_id=self.letter_id,
            forms=forms,
            overall_mastery=self.overall_mastery,
            mastery_level=MasteryLevel(self.mastery_level),
            confused_with=[
                ConfusionPair(symbol_id=cr.letter_id, form=cr.form, count=cr.count)
                for cr in self.confused_with
            ],
            contextual_mastery=ContextualMastery(
                in_words=self.contextual_mastery.in_words,
                standalone=self.contextual_mastery.standalone,
            ),
        )


class MasteryBlob(RootModel[dict[str, SymbolMasteryRecord]]):
    """Symbol id -> mastery record."""

    def to_wire(self) -> Any:
        return self.model_dump(mode="json", by_alias=True)


# ============================================================================
# Word mastery
# ============================================================================


class WordMasteryRecord(WireModel):
    word_id: str
    exposures: int = Field(0, ge=0)
    correct_answers: int = Field(0, ge=0)
    recent_accuracy: list[Outcome] = Field(default_factory=list, max_length=MAX_RECENT_ATTEMPTS)
    last_seen: IsoDatetime
    average_response_time: float = Field(0.0, ge=0.0)
    overall_mastery: float = Field(0.0, ge=0.0)
    mastery_level: int = Field(0, ge=0, le=3)

    @model_validator(mode="after")
    def _check_counts(self) -> WordMasteryRecord:
        if self.correct_answers > self.exposures:
            raise ValueError("correctAnswers exceeds exposures")
        return self

    @classmethod
    def from_domain(cls, wm: WordMastery) -> WordMasteryRecord:
        return cls(
            word_id=wm.word_id,
            exposures=wm.exposures,
            correct_answers=wm.correct_answers,
            recent_accuracy=list(wm.recent_accuracy),
            last_seen=wm.last_seen,
            average_response_time=wm.average_response_time,
            overall_mastery=wm.overall_mastery,
            mastery_level=int(wm.mastery_level),
        )

    def to_domain(self) -> WordMastery:
        return WordMastery(
            word_id=self.word_id,
            last_seen=ensure_aware(self.last_seen),
            exposures=self.exposures,
            correct_answers=self.correct_answers,
            recent_accuracy=list(self.recent_accuracy),
            average_response_time=self.average_response_time,
            overall_mastery=self.overall_mastery,
            mastery_level=MasteryLevel(self.mastery_level),
        )


class WordMasteryBlob(RootModel[dict[str, WordMasteryRecord]]):
    """Vocabulary id -> word mastery record."""

    def to_wire(self) -> Any:
        return self.model_dump(mode="json", by_alias=True)


# ============================================================================
# Word progression (vocabulary selector ledger)
# ============================================================================


class WordProgressRecord(WireModel):
    word_id: str
    last_seen: IsoDatetime
    times_presented: int = Field(0, ge=0)
    times_correct: int = Field(0, ge=0)
    average_response_time: float = Field(0.0, ge=0.0)
    confused_with: list[str] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, wp: WordProgress) -> WordProgressRecord:
        return cls(
            word_id=wp.word_id,
            last_seen=wp.last_seen,
            times_presented=wp.times_presented,
            times_correct=wp.times_correct,
            average_response_time=wp.average_response_time,
            confused_with=list(wp.confused_with),
        )

    def to_domain(self) -> WordProgress:
        return WordProgress(
            word_id=self.word_id,
            last_seen=ensure_aware(self.last_seen),
            times_presented=self.times_presented,
            times_correct=self.times_correct,
            average_response_time=self.average_response_time,
            confused_with=list(dict.fromkeys(self.confused_with)),
        )


class WordProgressionBlob(WireModel):
    word_mastery: list[WordProgressRecord] = Field(default_factory=list)
    recent_categories: list[str] = Field(default_factory=list)


# ============================================================================
# Export envelope
# ============================================================================

EXPORT_VERSION = "2.0"
LEGACY_VERSION = "1.0"


class ExportEnvelope(WireModel):
    version: str = EXPORT_VERSION
    export_date: IsoDatetime
    mastery_data: dict[str, Any]
    word_progression_data: dict[str, Any] | None = None


def validate_blob(model: type[BaseModel], data: Any, what: str) -> Any:
    """
    Validate raw decoded JSON against a schema.

    Raises:
        ProgressImportError: wrapping the pydantic ValidationError
    """
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ProgressImportError(f"Invalid {what}: {e.error_count()} error(s)\n{e}") from e
