"""
Configuration dataclass for policy search runs.

This module defines the Config dataclass, which groups all run parameters
in one immutable object. Config instances are created by PolicySearch.init()
after merging defaults, user config, and kwargs.

Design Notes
------------
- Immutable (frozen=True) to prevent accidental modification
- Memory-efficient (slots=True)
- Only the run shape is configurable: round count, grid bounds, search
  strategy and numeric-domain policy. Equation constants live in
  ``macropolicy.transition`` and are not parameters.
- Simple dataclass, no validation - validation happens in ConfigValidator

See Also
--------
ConfigValidator : Centralized validation for configuration parameters
macropolicy.search.PolicySearch.init : Creates Config from merged parameters
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class Config:
    """
    Immutable configuration for a policy search run.

    Parameters
    ----------
    max_round : int
        Number of rounds to search (rounds 1..max_round).
    rate_min, rate_max : float
        Inclusive bounds of the nominal interest rate grid.
    rate_step : float
        Nominal interest rate grid spacing (positive).
    tax_min, tax_max : float
        Inclusive bounds of the tax rate grid (within [0, 1]).
    tax_step : float
        Tax rate grid spacing (positive).
    strategy : str, optional
        "vectorized" (score the whole grid in one NumPy pass) or
        "exhaustive" (fork and advance one state per grid point).
        Default: "vectorized".
    n_workers : int, optional
        Worker processes for the exhaustive strategy. Default: 1.
    on_domain_error : str, optional
        "raise" to abort on non-finite values, "warn" to log them and drop
        the offending candidates. Default: "raise".

    Examples
    --------
    >>> import macropolicy as mp
    >>> search = mp.PolicySearch.init(max_round=5)
    >>> search.config.rate_step
    0.001

    Config is immutable:

    >>> search.config.max_round = 10  # doctest: +SKIP
    FrozenInstanceError: cannot assign to field 'max_round'
    """

    max_round: int

    # Nominal interest rate grid
    rate_min: float
    rate_max: float
    rate_step: float

    # Tax rate grid
    tax_min: float
    tax_max: float
    tax_step: float

    # Search behaviour
    strategy: str = "vectorized"  # "vectorized" or "exhaustive"
    n_workers: int = 1
    on_domain_error: str = "raise"  # "raise" or "warn"
