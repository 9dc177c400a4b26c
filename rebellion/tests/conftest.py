"""
Pytest fixtures for Rebellion tests.
"""

import pytest

from ..config import Settings
from ..engine_core.catalog import CardCatalog, default_catalog
from ..engine_core.reducer import Reducer
from .helpers import FakeClock, start_match


@pytest.fixture
def catalog() -> CardCatalog:
    """The packaged card catalog."""
    return default_catalog()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    """Default rules with p1 forced to play first."""
    return Settings(force_first_player=0)


@pytest.fixture
def reducer(catalog: CardCatalog, settings: Settings, clock: FakeClock) -> Reducer:
    return Reducer(catalog=catalog, settings=settings, clock=clock)


@pytest.fixture
def match_factory(reducer: Reducer):
    """
    Build a started match with fixed hands and decks.

    Usage:
        state = match_factory(p1_hand=["c-1"], p2_leaders=["s-2"])
    """
    def _factory(**kwargs):
        return start_match(reducer, **kwargs)
    return _factory
