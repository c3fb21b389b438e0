"""
MacroPolicy - Round-by-round Policy Search on an IS-LM / AS-AD Economy
=====================================================================

MacroPolicy simulates a small macroeconomic model one round at a time and,
for every round, searches a grid of policy instruments (nominal interest
rate, tax rate) for the pair that minimises a cumulative loss: a monetary
part (unemployment and inflation off target) plus a fiscal part (output
off 101 % of potential, debt-to-GDP off 50 %). The winner of round ``r``
becomes the baseline of round ``r + 1``.

Quick Start
-----------
Reference run (50 rounds, 211 x 401 grid):

>>> import macropolicy as mp
>>> search = mp.PolicySearch.init()
>>> results = search.run()
>>> results.winners[-1]  # (nominal_rate, tax_rate, total_loss) in round 50

Custom configuration via kwargs or YAML:

>>> search = mp.PolicySearch.init(max_round=10, rate_step=0.005)
>>> search = mp.PolicySearch.init(config="my_config.yml")

Step through rounds manually:

>>> search = mp.PolicySearch.init(max_round=5)
>>> outcome = search.step()
>>> outcome.nominal_rate, outcome.tax_rate

Use the transition directly:

>>> state = mp.EconomyState.init(max_round=2)
>>> state = mp.advance(state, nominal_rate=0.05, tax_rate=0.2)
>>> state.record().gdp

Key Concepts
------------
**Round**
  One simulation period with its own full set of model variables.

**Baseline**
  The state selected as optimal through round ``r - 1``; every candidate of
  round ``r`` is evaluated against it. Baselines are never modified.

**Loss**
  Cumulative quadratic penalty; lower is better. Ties are broken by grid
  enumeration order (interest rate ascending, then tax rate ascending).

Public API
----------
PolicySearch
    Run driver (configuration, round loop).
EconomyState, RoundRecord
    State timeline and its read-only per-round view.
advance, evaluate_round
    One-round state transition (scalar / vectorized).
InstrumentGrid, GridSearchOptimizer, RoundOutcome
    Search space and per-round search.
SearchResults
    Outcome of a run.
logging
    Custom logging with DEEP_DEBUG level and per-component configuration.

Notes
-----
- Runs are deterministic: identical configuration gives identical output.
- Configuration precedence: defaults.yml → user config → kwargs
- Equation constants are part of the model and not configurable.
"""

from __future__ import annotations

__version__: str = "0.1.0"

# ============================================================================
# User-facing utilities (must be before everything that logs)
# ============================================================================
from . import logging  # noqa: E402 (circular‑safe)

# ============================================================================
# Core
# ============================================================================
from .errors import (  # noqa: E402
    ConfigurationError,
    InvalidStateError,
    MacroPolicyError,
    NumericDomainError,
)
from .grid import InstrumentGrid  # noqa: E402
from .optimizer import GridSearchOptimizer, RoundOutcome  # noqa: E402
from .results import SearchResults  # noqa: E402
from .search import PolicySearch  # noqa: E402
from .state import EconomyState, RoundRecord  # noqa: E402
from .transition import advance, evaluate_round  # noqa: E402

# ============================================================================
# Public API exports
# ============================================================================
__all__ = [
    "PolicySearch",
    "__version__",
    # State
    "EconomyState",
    "RoundRecord",
    # Transition
    "advance",
    "evaluate_round",
    # Search
    "InstrumentGrid",
    "GridSearchOptimizer",
    "RoundOutcome",
    "SearchResults",
    # Errors
    "MacroPolicyError",
    "InvalidStateError",
    "NumericDomainError",
    "ConfigurationError",
    # Utilities
    "logging",
]
