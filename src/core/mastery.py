"""
Core Mastery Module.

Shared mastery vocabulary and arithmetic used by the symbol and word stores.

Design:
- Form: Positional rendering of a symbol (isolated/initial/medial/final)
- MasteryLevel: Four-tier bucket derived from a continuous 0-1 score
- blended_accuracy: Recent-window accuracy blended with lifetime accuracy
- recency_bonus: Confidence decay by hours since the item was last seen
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from enum import Enum, IntEnum

Clock = Callable[[], datetime]


class Form(str, Enum):
    """Positional rendering of a symbol inside a word."""

    ISOLATED = "isolated"
    INITIAL = "initial"
    MEDIAL = "medial"
    FINAL = "final"

    @property
    def display_name(self) -> str:
        """Capitalized name as shown in form-recognition options."""
        return self.value.capitalize()


# Declaration order doubles as the tie-break order for weakest-form lookups
ALL_FORMS: tuple[Form, ...] = (Form.ISOLATED, Form.INITIAL, Form.MEDIAL, Form.FINAL)

# Contribution of each form to a symbol's overall mastery
FORM_WEIGHTS: dict[Form, float] = {
    Form.ISOLATED: 0.30,
    Form.INITIAL: 0.25,
    Form.MEDIAL: 0.20,
    Form.FINAL: 0.25,
}

MAX_RECENT_ATTEMPTS = 5
RECENT_ACCURACY_WEIGHT = 0.7
OVERALL_ACCURACY_WEIGHT = 0.3

RECENCY_HORIZON_HOURS = 48.0
RECENCY_FLOOR = 0.5


class MasteryLevel(IntEnum):
    """
    Mastery level categorization.

    Stored as 0-3 in persisted blobs.
    """

    LEARNING = 0
    FAMILIAR = 1
    PROFICIENT = 2
    MASTERED = 3

    @classmethod
    def from_score(cls, score: float) -> MasteryLevel:
        """
        Convert a 0-1 mastery score to a level.

        Args:
            score: Mastery score between 0 and 1

        Returns:
            Corresponding MasteryLevel
        """
        if score >= 0.95:
            return cls.MASTERED
        elif score >= 0.80:
            return cls.PROFICIENT
        elif score >= 0.60:
            return cls.FAMILIAR
        else:
            return cls.LEARNING

    @property
    def display_name(self) -> str:
        """Human-readable name."""
        return self.name.title()

    @property
    def emoji(self) -> str:
        """Status glyph for CLI display."""
        return {
            MasteryLevel.LEARNING: "◔",
            MasteryLevel.FAMILIAR: "◑",
            MasteryLevel.PROFICIENT: "◕",
            MasteryLevel.MASTERED: "●",
        }[self]

    @property
    def color(self) -> str:
        """Rich color for CLI display."""
        return {
            MasteryLevel.LEARNING: "red",
            MasteryLevel.FAMILIAR: "yellow",
            MasteryLevel.PROFICIENT: "cyan",
            MasteryLevel.MASTERED: "green",
        }[self]


# ============================================================================
# Time helpers
# ============================================================================


def utc_now() -> datetime:
    """Default clock: timezone-aware UTC now."""
    return datetime.now(UTC)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def hours_since(last_seen: datetime | None, now: datetime) -> float:
    """
    Calculate hours elapsed since an item was last seen.

    Args:
        last_seen: Timestamp of the last attempt (naive values are UTC)
        now: Reference time for the whole operation

    Returns:
        Hours elapsed as float (0 for never-seen items)
    """
    if last_seen is None:
        return 0.0
    delta = ensure_aware(now) - ensure_aware(last_seen)
    return delta.total_seconds() / 3600.0


def to_iso(value: datetime) -> str:
    """Render a timestamp the way browsers do (`2024-05-01T10:00:00.000Z`)."""
    text = ensure_aware(value).astimezone(UTC).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


# ============================================================================
# Mastery arithmetic
# ============================================================================


def recency_bonus(last_seen: datetime | None, now: datetime) -> float:
    """
    Confidence multiplier that decays with time since last seen.

    Formula: max(0.5, 1 - hours / 48)

    Full weight for anything seen within the last hour or so, bottoming out
    at 0.5 after two days.
    """
    return max(RECENCY_FLOOR, 1.0 - hours_since(last_seen, now) / RECENCY_HORIZON_HOURS)


def mean_outcome(outcomes: Sequence[int]) -> float:
    """Mean of a 0/1 outcome window (0 when empty)."""
    if not outcomes:
        return 0.0
    return sum(outcomes) / len(outcomes)


def blended_accuracy(recent: Sequence[int], correct: int, exposures: int) -> float:
    """
    Blend recent-window accuracy with lifetime accuracy.

    Formula: 0.7 x recent + 0.3 x (correct / exposures)

    Args:
        recent: Last outcomes, most recent last (0/1)
        correct: Lifetime correct answers
        exposures: Lifetime attempts

    Returns:
        Accuracy 0-1 (0 when never attempted)
    """
    if exposures <= 0:
        return 0.0
    overall = correct / exposures
    return mean_outcome(recent) * RECENT_ACCURACY_WEIGHT + overall * OVERALL_ACCURACY_WEIGHT


def push_outcome(window: list[int], correct: bool) -> None:
    """Append an outcome to a bounded window, dropping the oldest on overflow."""
    window.append(1 if correct else 0)
    while len(window) > MAX_RECENT_ATTEMPTS:
        window.pop(0)
