"""
Export and import of learner progress.

Export produces a versioned envelope:

    {"version": "2.0", "exportDate": "...", "masteryData": {...},
     "wordProgressionData": {...} | null}

Import accepts that envelope, the older `{"version": "1.0", "letters": {...}}`
wrapper, or a bare mastery blob. Older payloads never carry word-progression
data. Every part of the payload is validated before anything is returned, so
a corrupt file leaves the caller's state untouched.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from loguru import logger

from src.adaptive.mastery_store import MasteryStore
from src.adaptive.schemas import (
    EXPORT_VERSION,
    LEGACY_VERSION,
    ExportEnvelope,
    ProgressImportError,
    WordProgressionBlob,
    parse_json_text,
    validate_blob,
)
from src.adaptive.vocabulary_selector import VocabularySelector
from src.core.mastery import Clock, utc_now

SUPPORTED_VERSIONS = (LEGACY_VERSION, EXPORT_VERSION)


@dataclass
class ImportedProgress:
    """Validated result of an import."""

    mastery_store: MasteryStore
    word_progression_data: dict[str, Any] | None
    version: str
    legacy: bool

    def apply_word_progression(self, selector: VocabularySelector) -> bool:
        """Load word-progression data into a selector; False when there is none."""
        if self.word_progression_data is None:
            return False
        selector.deserialize(self.word_progression_data)
        return True


def export_progress(
    store: MasteryStore,
    selector: VocabularySelector | None = None,
    clock: Clock = utc_now,
) -> dict[str, Any]:
    """
    Build the export envelope.

    Args:
        store: Symbol mastery to export
        selector: Vocabulary selector whose ledger is exported, if any
        clock: Source of the export timestamp

    Returns:
        Envelope as a JSON-ready dict
    """
    envelope = ExportEnvelope(
        version=EXPORT_VERSION,
        export_date=clock(),
        mastery_data=store.serialize(),
        word_progression_data=selector.serialize() if selector else None,
    )
    return envelope.to_wire()


def export_to_file(
    path: Path,
    store: MasteryStore,
    selector: VocabularySelector | None = None,
    clock: Clock = utc_now,
) -> Path:
    """Write the export envelope to a JSON file."""
    data = export_progress(store, selector, clock=clock)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)

    logger.info(f"Exported progress for {len(data['masteryData'])} symbols to {path}")
    return path


def import_progress(payload: str | bytes | dict[str, Any], clock: Clock = utc_now) -> ImportedProgress:
    """
    Parse and validate an exported payload.

    Args:
        payload: JSON text or already-decoded JSON
        clock: Clock for the restored mastery store

    Returns:
        ImportedProgress with a fresh MasteryStore

    Raises:
        ProgressImportError: If the payload is not valid JSON or does not
            match any supported layout
    """
    data = parse_json_text(payload) if isinstance(payload, (str, bytes)) else payload
    if not isinstance(data, dict):
        raise ProgressImportError("Progress data must be a JSON object")

    if "masteryData" in data:
        envelope: ExportEnvelope = validate_blob(ExportEnvelope, data, "export envelope")
        if envelope.version not in SUPPORTED_VERSIONS:
            raise ProgressImportError(f"Unsupported export version: {envelope.version}")

        word_data = envelope.word_progression_data
        if word_data is not None:
            validate_blob(WordProgressionBlob, word_data, "word progression data")

        store = MasteryStore.restore(_mastery_blob(envelope.mastery_data), clock=clock)
        logger.info(f"Imported v{envelope.version} export with {len(store)} symbols")
        return ImportedProgress(
            mastery_store=store,
            word_progression_data=word_data,
            version=envelope.version,
            legacy=False,
        )

    store = MasteryStore.restore(_mastery_blob(data), clock=clock)
    logger.info(f"Imported legacy mastery data with {len(store)} symbols")
    return ImportedProgress(
        mastery_store=store,
        word_progression_data=None,
        version=str(data.get("version", LEGACY_VERSION)),
        legacy=True,
    )


def import_from_file(path: Path, clock: Clock = utc_now) -> ImportedProgress:
    """Read and validate an exported file."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ProgressImportError(f"Import file not found: {path}") from e
    except UnicodeDecodeError as e:
        raise ProgressImportError(f"Import file is not UTF-8 text: {path}") from e
    return import_progress(text, clock=clock)


def _mastery_blob(data: dict[str, Any]) -> dict[str, Any]:
    """
    Strip the older `{"version": "1.0", "letters": {...}}` wrapper.

    Envelopes written after a legacy import carry that wrapper inside
    `masteryData`, so both import paths unwrap the same way.
    """
    if "letters" in data:
        mastery_data = data["letters"]
    else:
        mastery_data = {k: v for k, v in data.items() if k != "version"}
    if not isinstance(mastery_data, dict):
        raise ProgressImportError("Mastery data must be a JSON object")
    return mastery_data
