"""
Instrument grid.

The search space is the Cartesian product of a nominal interest rate axis
and a tax rate axis. Candidates are enumerated with the interest rate in
the outer loop and the tax rate in the inner loop, both ascending, so the
enumeration index of the pair ``(rates[a], tax_rates[b])`` is
``a * len(tax_rates) + b``. That index is the tie-breaker of the search.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from macropolicy.errors import ConfigurationError
from macropolicy.typing import Float1D

__all__ = ["InstrumentGrid", "axis_points", "axis_size"]

# Absorbs binary rounding in (hi - lo) / step so inclusive upper bounds survive
_STEP_TOLERANCE = 1e-9

# Hard limits: every candidate of a round is evaluated in memory at once
MAX_AXIS_POINTS = 10_000_000
MAX_GRID_POINTS = 50_000_000


def axis_size(lo: float, hi: float, step: float) -> int:
    """
    Number of points of the inclusive axis ``lo, lo + step, ..., <= hi``.

    Raises
    ------
    ConfigurationError
        If the step is not positive, the bounds are inverted, or the axis
        would have more than ``MAX_AXIS_POINTS`` points.
    """
    if step <= 0:
        raise ConfigurationError(f"grid step must be > 0, got {step}")
    if lo > hi:
        raise ConfigurationError(f"grid lower bound {lo} exceeds upper bound {hi}")
    span = (hi - lo) / step
    if not math.isfinite(span) or span >= MAX_AXIS_POINTS:
        raise ConfigurationError(
            f"grid axis [{lo}, {hi}] with step {step} exceeds "
            f"{MAX_AXIS_POINTS:,} points"
        )
    return math.floor(span + _STEP_TOLERANCE) + 1


def axis_points(lo: float, hi: float, step: float) -> Float1D:
    """
    Return the inclusive 1-D axis ``lo, lo + step, ..., <= hi``.

    Points are computed as ``lo + k * step`` rather than by repeated
    addition, so there is no accumulated drift across the axis.

    Examples
    --------
    >>> axis_points(0.0, 0.4, 0.001).size
    401
    >>> axis_points(-0.01, 0.2, 0.001).size
    211
    """
    n = axis_size(lo, hi, step)
    return lo + step * np.arange(n, dtype=np.float64)


@dataclass(slots=True, frozen=True, eq=False)
class InstrumentGrid:
    """
    2-D grid of (nominal interest rate, tax rate) candidates.

    Parameters
    ----------
    rates : Float1D
        Nominal interest rate axis (outer loop).
    tax_rates : Float1D
        Tax rate axis (inner loop).
    """

    rates: Float1D
    tax_rates: Float1D

    @classmethod
    def from_bounds(
        cls,
        rate_min: float,
        rate_max: float,
        rate_step: float,
        tax_min: float,
        tax_max: float,
        tax_step: float,
    ) -> InstrumentGrid:
        """Build a grid from inclusive bounds and step sizes."""
        n_points = axis_size(rate_min, rate_max, rate_step) * axis_size(
            tax_min, tax_max, tax_step
        )
        if n_points > MAX_GRID_POINTS:
            raise ConfigurationError(
                f"instrument grid has {n_points:,} points, "
                f"the limit is {MAX_GRID_POINTS:,}"
            )
        return cls(
            rates=axis_points(rate_min, rate_max, rate_step),
            tax_rates=axis_points(tax_min, tax_max, tax_step),
        )

    @classmethod
    def from_values(cls, rates: Float1D, tax_rates: Float1D) -> InstrumentGrid:
        """
        Build a grid from explicit axis values, kept in the given order.

        Duplicate values are allowed; they produce candidates with equal
        losses, resolved by enumeration index.
        """
        r = np.asarray(rates, dtype=np.float64).copy()
        tx = np.asarray(tax_rates, dtype=np.float64).copy()
        for name, arr in (("rates", r), ("tax_rates", tx)):
            if arr.ndim != 1 or arr.size == 0:
                raise ConfigurationError(
                    f"{name} must be a non-empty 1-D array (got shape={arr.shape})"
                )
            if not np.isfinite(arr).all():
                raise ConfigurationError(f"{name} must be finite")
        return cls(rates=r, tax_rates=tx)

    @property
    def shape(self) -> tuple[int, int]:
        return (int(self.rates.size), int(self.tax_rates.size))

    @property
    def size(self) -> int:
        """Number of candidates."""
        return int(self.rates.size * self.tax_rates.size)

    def points(self) -> tuple[Float1D, Float1D]:
        """
        Flattened ``(rates, tax_rates)`` pairs in enumeration order.

        Returns
        -------
        tuple of Float1D
            Two arrays of length :attr:`size`; position ``k`` holds the
            candidate with enumeration index ``k``.
        """
        rr, tt = np.meshgrid(self.rates, self.tax_rates, indexing="ij")
        return rr.ravel(), tt.ravel()

    def point(self, index: int) -> tuple[float, float]:
        """Instruments of the candidate with enumeration index ``index``."""
        if not 0 <= index < self.size:
            raise IndexError(f"grid index {index} out of range [0, {self.size})")
        a, b = divmod(index, self.tax_rates.size)
        return float(self.rates[a]), float(self.tax_rates[b])

    def __repr__(self) -> str:
        return (
            f"InstrumentGrid(rates=[{self.rates[0]:g}..{self.rates[-1]:g}] "
            f"x{self.rates.size}, tax_rates=[{self.tax_rates[0]:g}.."
            f"{self.tax_rates[-1]:g}] x{self.tax_rates.size})"
        )
