"""
Content: Static reference tables for the drilling engine.

Core modules:
- catalog: Symbol, VocabularyItem and the Catalog that loads them

Data:
- data/symbols.json, data/vocabulary.json, data/progression.json
"""

from .catalog import Catalog, CatalogError, ExampleWord, Symbol, VocabularyItem

__all__ = [
    "Catalog",
    "CatalogError",
    "ExampleWord",
    "Symbol",
    "VocabularyItem",
]
