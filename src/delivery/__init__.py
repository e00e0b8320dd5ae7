"""
aleph: terminal delivery of the adaptive drilling engine.

Components:
- StateStore: JSON persistence of the learner state
- DrillSession: Engine wiring, answer grading and outcome recording
- transfer: Versioned export/import of progress
- drill_cli: Typer + Rich terminal interface
"""

from .drill_session import AnswerOutcome, DrillSession, SessionTally
from .state_store import StateStore
from .transfer import (
    ImportedProgress,
    export_progress,
    export_to_file,
    import_from_file,
    import_progress,
)

__all__ = [
    # Session
    "DrillSession",
    "AnswerOutcome",
    "SessionTally",
    # Persistence
    "StateStore",
    # Transfer
    "ImportedProgress",
    "export_progress",
    "export_to_file",
    "import_progress",
    "import_from_file",
]
