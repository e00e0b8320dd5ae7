"""
Symbol analyzer: decompose a word into (symbol, form) occurrences.

Forms follow the joining rules of the script. A character connects to its
predecessor when that predecessor is a tracked, connecting symbol, and to its
successor when the successor is tracked and the character itself connects
forward. Only the immediate neighbours are inspected, so untracked
characters (spaces, ZWNJ, diacritics) break the join.
"""

from __future__ import annotations

from src.adaptive.models import SymbolOccurrence
from src.content.catalog import Catalog, Symbol
from src.core.mastery import Form


class SymbolAnalyzer:
    """
    Single-pass analyzer built from a catalog.

    Construct one per catalog and pass it to the components that need it.
    """

    def __init__(self, catalog: Catalog):
        self._symbols: dict[str, Symbol] = {}
        for symbol in catalog.symbols:
            for glyph in symbol.bare_glyphs:
                self._symbols.setdefault(glyph, symbol)

    def symbol_for(self, character: str) -> Symbol | None:
        """Tracked symbol rendered by a character, if any."""
        return self._symbols.get(character)

    def analyze(self, text: str) -> list[SymbolOccurrence]:
        """
        Decompose text into tracked symbol occurrences.

        Args:
            text: Word or phrase

        Returns:
            Occurrences in order; positions index code points of `text`.
            Untracked characters are skipped.
        """
        chars = list(text)
        tracked = [self._symbols.get(ch) for ch in chars]
        occurrences = []

        for i, symbol in enumerate(tracked):
            if symbol is None:
                continue

            prev_symbol = tracked[i - 1] if i > 0 else None
            next_symbol = tracked[i + 1] if i + 1 < len(tracked) else None

            joins_prev = prev_symbol is not None and not prev_symbol.non_connecting
            joins_next = next_symbol is not None and not symbol.non_connecting

            occurrences.append(
                SymbolOccurrence(
                    symbol_id=symbol.id,
                    form=_form_for(joins_prev, joins_next),
                    position=i,
                    character=chars[i],
                )
            )

        return occurrences

    def find_occurrences(
        self,
        text: str,
        symbol_id: str,
        form: Form | str | None = None,
    ) -> list[SymbolOccurrence]:
        """Occurrences of one symbol, optionally restricted to one form."""
        wanted = Form(form) if form is not None else None
        return [
            occ
            for occ in self.analyze(text)
            if occ.symbol_id == symbol_id and (wanted is None or occ.form == wanted)
        ]


def _form_for(joins_prev: bool, joins_next: bool) -> Form:
    if joins_prev and joins_next:
        return Form.MEDIAL
    if joins_prev:
        return Form.FINAL
    if joins_next:
        return Form.INITIAL
    return Form.ISOLATED
