"""
Active-symbol progression.

Symbols are taught in ordered groups. The first group is always active; each
following group unlocks only once the learner has practised most of the
currently active symbols and answers them accurately enough.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from loguru import logger

from src.adaptive.mastery_store import MasteryStore

MIN_MASTERY_FOR_NEW_SYMBOL = 0.70
EXPOSURE_COVERAGE = 0.80
MIN_EXPOSURES = 5
SUGGESTION_COUNT = 2


@dataclass(frozen=True)
class ProgressionPolicy:
    """
    Gate for expanding the active symbol set.

    A later group activates when:
    - at least 80% of active symbols have 5+ total exposures, and
    - the mean accuracy (correct / exposures) of those symbols reaches
      `min_mastery_for_new_symbol`

    Groups unlock strictly in order.
    """

    groups: tuple[tuple[str, ...], ...]
    min_mastery_for_new_symbol: float = MIN_MASTERY_FOR_NEW_SYMBOL
    exposure_coverage: float = EXPOSURE_COVERAGE
    min_exposures: int = MIN_EXPOSURES

    def active_symbols(
        self,
        store: MasteryStore,
        enabled_ids: Sequence[str],
    ) -> list[str]:
        """
        Currently active symbol ids, restricted to the enabled ones.

        Args:
            store: Mastery source
            enabled_ids: Symbols the caller allows at all

        Returns:
            Active ids in teaching order; the enabled ids themselves when the
            progression leaves nothing enabled
        """
        if not self.groups:
            return list(enabled_ids)

        active = list(self.groups[0])
        unlocked = 1
        for group in self.groups[1:]:
            if not self._ready_for_more(store, active):
                break
            active.extend(sid for sid in group if sid not in active)
            unlocked += 1

        enabled = set(enabled_ids)
        result = [sid for sid in active if sid in enabled]
        if not result:
            logger.debug("No enabled symbol is active yet; using all enabled symbols")
            return list(enabled_ids)

        logger.debug(f"{unlocked}/{len(self.groups)} groups active ({len(result)} symbols)")
        return result

    def _ready_for_more(self, store: MasteryStore, active: Iterable[str]) -> bool:
        active = list(active)
        if not active:
            return True

        practised = []
        for sid in active:
            mastery = store.get_symbol_mastery(sid)
            if mastery is not None and mastery.total_exposures >= self.min_exposures:
                practised.append(mastery)

        if not practised or len(practised) < self.exposure_coverage * len(active):
            return False

        mean_accuracy = sum(m.lifetime_accuracy for m in practised) / len(practised)
        return mean_accuracy >= self.min_mastery_for_new_symbol

    def suggest_next(self, active_ids: Iterable[str]) -> list[str]:
        """Up to two not-yet-active symbols from the earliest incomplete group."""
        active = set(active_ids)
        for group in self.groups:
            pending = [sid for sid in group if sid not in active]
            if pending:
                return pending[:SUGGESTION_COUNT]
        return []
