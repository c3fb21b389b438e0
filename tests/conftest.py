"""Pytest configuration and fixtures for macropolicy tests."""

import os

import pytest

from macropolicy import logging
from macropolicy.grid import InstrumentGrid
from macropolicy.optimizer import GridSearchOptimizer
from macropolicy.state import EconomyState


@pytest.fixture
def seed_state() -> EconomyState:
    """Seed state with room for five rounds."""
    return EconomyState.init(max_round=5)


@pytest.fixture
def coarse_grid() -> InstrumentGrid:
    """Reference bounds at 1 % spacing: 22 x 41 candidates."""
    return InstrumentGrid.from_bounds(-0.01, 0.20, 0.01, 0.0, 0.40, 0.01)


@pytest.fixture
def coarse_optimizer(coarse_grid: InstrumentGrid) -> GridSearchOptimizer:
    return GridSearchOptimizer(coarse_grid)


@pytest.fixture(autouse=True)
def mute_macropolicy_logs(caplog):
    # - COVERAGE_RUN: DEBUG to execute all logging for accurate coverage
    # - Everything else: ERROR for faster tests
    if os.environ.get("COVERAGE_RUN") == "true":
        level = logging.DEBUG
    else:
        level = logging.ERROR

    caplog.set_level(level, logger="macropolicy")
    logging.getLogger("macropolicy").setLevel(level)
