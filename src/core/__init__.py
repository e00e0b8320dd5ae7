"""
Core Module - Shared mastery vocabulary.

Components:
- mastery: Form, MasteryLevel, accuracy blending and recency decay

Design Principle:
The symbol and word stores in src/adaptive/ import their arithmetic from
src/core/ rather than reimplementing it.
"""

from src.core.mastery import (
    ALL_FORMS,
    FORM_WEIGHTS,
    Form,
    MasteryLevel,
    blended_accuracy,
    recency_bonus,
)

__all__ = [
    "ALL_FORMS",
    "FORM_WEIGHTS",
    "Form",
    "MasteryLevel",
    "blended_accuracy",
    "recency_bonus",
]
