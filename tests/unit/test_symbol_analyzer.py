"""
Unit tests for SymbolAnalyzer joining rules against the bundled catalog.
"""

from src.core.mastery import Form


def _pairs(occurrences):
    return [(o.symbol_id, o.form) for o in occurrences]


class TestAnalyze:
    def test_salam(self, analyzer):
        occurrences = analyzer.analyze("سلام")

        assert _pairs(occurrences) == [
            ("sin", Form.INITIAL),
            ("lam", Form.MEDIAL),
            ("alef", Form.FINAL),
            ("mim", Form.ISOLATED),
        ]
        assert [o.position for o in occurrences] == [0, 1, 2, 3]

    def test_non_connecting_symbol_breaks_the_join(self, analyzer):
        # alef never joins forward, so beh stands alone
        assert _pairs(analyzer.analyze("آب")) == [
            ("alef", Form.ISOLATED),
            ("beh", Form.ISOLATED),
        ]

    def test_alias_keeps_original_character(self, analyzer):
        occurrence = analyzer.analyze("آب")[0]
        assert occurrence.character == "آ"
        assert analyzer.symbol_for("ك").id == "kaf"

    def test_two_letter_word(self, analyzer):
        assert _pairs(analyzer.analyze("من")) == [
            ("mim", Form.INITIAL),
            ("nun", Form.FINAL),
        ]

    def test_untracked_characters_are_skipped_and_break_joins(self, analyzer):
        occurrences = analyzer.analyze("ب ب!")

        assert _pairs(occurrences) == [("beh", Form.ISOLATED), ("beh", Form.ISOLATED)]
        assert [o.position for o in occurrences] == [0, 2]

    def test_empty_text(self, analyzer):
        assert analyzer.analyze("") == []


class TestFindOccurrences:
    def test_filters_by_symbol(self, analyzer):
        found = analyzer.find_occurrences("سلام", "lam")
        assert _pairs(found) == [("lam", Form.MEDIAL)]

    def test_filters_by_form(self, analyzer):
        assert analyzer.find_occurrences("سلام", "lam", Form.FINAL) == []
        assert len(analyzer.find_occurrences("سلام", "lam", "medial")) == 1
