"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
Time is controlled through an injectable clock and randomness through a
seeded random.Random, so no test depends on wall-clock time or entropy.
"""
import random
import sys
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.adaptive.mastery_store import MasteryStore  # noqa: E402
from src.adaptive.question_generator import QuestionGenerator  # noqa: E402
from src.adaptive.symbol_analyzer import SymbolAnalyzer  # noqa: E402
from src.adaptive.vocabulary_selector import VocabularySelector  # noqa: E402
from src.adaptive.word_mastery_store import WordMasteryStore  # noqa: E402
from src.content.catalog import Catalog  # noqa: E402
from src.core.mastery import ALL_FORMS  # noqa: E402

START = datetime(2024, 5, 1, 10, 0, tzinfo=UTC)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (engine + persistence)")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        # Mark based on test file location
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


class FakeClock:
    """Settable clock; call it to read the current time."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture(scope="session")
def catalog():
    """The bundled reference catalog."""
    return Catalog.load()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def store(clock):
    return MasteryStore(clock=clock)


@pytest.fixture
def word_store(clock):
    return WordMasteryStore(clock=clock)


@pytest.fixture
def analyzer(catalog):
    return SymbolAnalyzer(catalog)


@pytest.fixture
def selector(store, catalog, rng, clock):
    return VocabularySelector(store, catalog, rng=rng, clock=clock)


@pytest.fixture
def generator(store, catalog, selector, analyzer, rng):
    return QuestionGenerator(store, catalog, selector, analyzer, rng=rng)


@pytest.fixture
def master():
    """Answer every form of a symbol correctly `per_form` times."""

    def _master(store: MasteryStore, symbol_id: str, per_form: int = 5) -> None:
        for form in ALL_FORMS:
            for _ in range(per_form):
                store.record_attempt(symbol_id, form, True)

    return _master
