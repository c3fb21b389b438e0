"""
Economy state timeline.

An :class:`EconomyState` stores every model variable as a fixed-length
NumPy timeline indexed by round, plus the round pointer ``t`` of the last
finalized round. Slot 0 holds the seed values and is never recomputed.

States are value-like: the transition functions in
:mod:`macropolicy.transition` never mutate their input, they fork it and
return the advanced copy. Forking copies every timeline, so a fork and its
source never share memory.

Examples
--------
>>> from macropolicy.state import EconomyState
>>> seed = EconomyState.init(max_round=3)
>>> seed.t, seed.max_round
(0, 3)
>>> seed.full_employment_gdp[0]
18000.0
>>> fork = seed.fork()
>>> fork.bonds is seed.bonds
False
"""

from __future__ import annotations

from dataclasses import dataclass, fields

import numpy as np

from macropolicy.errors import ConfigurationError, InvalidStateError
from macropolicy.typing import Float1D

__all__ = ["EconomyState", "RoundRecord", "TIMELINES"]

# ── seed (round 0) values ────────────────────────────────────────────────
SEED_NOMINAL_INTEREST_RATE = 0.05
SEED_INFLATION = 0.02
SEED_EXPECTED_INFLATION = (0.0, 0.02)  # rounds 0 and 1
SEED_FULL_EMPLOYMENT_GDP = 18_000.0
SEED_PRICE = 1.0
SEED_BONDS = 13_500.0

# Fiscal output target as a multiple of full-employment GDP
FISCAL_GDP_TARGET = 1.01

# Timeline names, in declaration order
TIMELINES: tuple[str, ...] = (
    "tax_rate",
    "tax",
    "gdp",
    "consumption",
    "real_interest_rate",
    "nominal_interest_rate",
    "inflation",
    "expected_inflation",
    "investment",
    "government_spending",
    "full_employment_gdp",
    "price",
    "nominal_deficit",
    "bonds",
    "unemployment_rate",
    "monetary_loss",
    "fiscal_loss",
    "total_loss",
)


@dataclass(slots=True, frozen=True)
class RoundRecord:
    """
    Read-only view of one finalized round.

    This is the only thing reporters receive: plain floats, no access to
    the underlying timelines. ``expected_inflation`` is the expectation
    that entered this round's inflation equation (formed one round
    earlier), and ``fiscal_gdp_target`` is 101 % of full-employment GDP.
    """

    round: int
    monetary_loss: float
    fiscal_loss: float
    total_loss: float
    nominal_interest_rate: float
    government_spending: float
    tax_rate: float
    expected_inflation: float
    real_interest_rate: float
    full_employment_gdp: float
    gdp: float
    fiscal_gdp_target: float
    consumption: float
    investment: float
    unemployment_rate: float
    inflation: float
    price: float
    nominal_deficit: float
    bonds: float
    tax: float

    def as_dict(self) -> dict[str, float]:
        """Return the record as a plain ``{field: value}`` dict."""
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(slots=True)
class EconomyState:
    """
    Timeline of all model variables, rounds ``0..max_round``.

    Every timeline has ``max_round + 1`` slots except ``expected_inflation``,
    which is written one round ahead and has ``max_round + 2``. Slots after
    ``t`` are zero, apart from ``expected_inflation[t + 1]``.

    Use :meth:`init` to build a seeded state rather than calling the
    constructor directly.
    """

    # ── fiscal ───────────────────────────────────────────────────────────
    tax_rate: Float1D
    tax: Float1D
    government_spending: Float1D
    nominal_deficit: Float1D
    bonds: Float1D

    # ── goods market ─────────────────────────────────────────────────────
    gdp: Float1D
    full_employment_gdp: Float1D
    consumption: Float1D
    investment: Float1D
    unemployment_rate: Float1D

    # ── money & prices ───────────────────────────────────────────────────
    nominal_interest_rate: Float1D
    real_interest_rate: Float1D
    inflation: Float1D
    expected_inflation: Float1D  # shape (max_round + 2,)
    price: Float1D

    # ── cumulative losses ────────────────────────────────────────────────
    monetary_loss: Float1D
    fiscal_loss: Float1D
    total_loss: Float1D

    # last finalized round
    t: int = 0

    # Constructor
    # ---------------------------------------------------------------------
    @classmethod
    def init(cls, max_round: int) -> EconomyState:
        """
        Allocate all timelines and write the round-0 seed values.

        Parameters
        ----------
        max_round : int
            Last round the state can be advanced to (>= 1).

        Returns
        -------
        EconomyState
            Seed state with ``t == 0``.

        Raises
        ------
        ConfigurationError
            If ``max_round`` is not a positive integer.
        """
        if isinstance(max_round, bool) or not isinstance(max_round, (int, np.integer)):
            raise ConfigurationError(
                f"max_round must be int, got {type(max_round).__name__}"
            )
        if max_round < 1:
            raise ConfigurationError(f"max_round must be >= 1, got {max_round}")

        n_slots = int(max_round) + 1
        arrays = {name: np.zeros(n_slots, dtype=np.float64) for name in TIMELINES}
        arrays["expected_inflation"] = np.zeros(n_slots + 1, dtype=np.float64)

        state = cls(**arrays, t=0)
        state.nominal_interest_rate[0] = SEED_NOMINAL_INTEREST_RATE
        state.inflation[0] = SEED_INFLATION
        state.expected_inflation[0:2] = SEED_EXPECTED_INFLATION
        state.full_employment_gdp[0] = SEED_FULL_EMPLOYMENT_GDP
        state.price[0] = SEED_PRICE
        state.bonds[0] = SEED_BONDS
        state.monetary_loss[0] = 0.0
        state.fiscal_loss[0] = 0.0
        return state

    @property
    def max_round(self) -> int:
        """Last round this state has room for."""
        return int(self.gdp.shape[0]) - 1

    # Forking
    # ---------------------------------------------------------------------
    def copy_history_from(self, source: EconomyState, through_round: int) -> None:
        """
        Overwrite this state's history with ``source``'s rounds ``0..through_round``.

        Slots after ``through_round`` are cleared so the result is a valid
        contiguous history, and ``t`` is set to ``through_round``. Values are
        copied, never shared.

        Parameters
        ----------
        source : EconomyState
            State to copy from. Must have the same capacity.
        through_round : int
            Last round to copy; must not exceed ``source.t``.

        Raises
        ------
        InvalidStateError
            On a capacity mismatch or an out-of-range ``through_round``.
        """
        if source.max_round != self.max_round:
            raise InvalidStateError(
                f"cannot copy history between states of different capacity "
                f"({source.max_round} vs {self.max_round})"
            )
        if not 0 <= through_round <= source.t:
            raise InvalidStateError(
                f"through_round must be in [0, {source.t}] "
                f"(source is at round {source.t}), got {through_round}"
            )

        k = through_round + 1
        for name in TIMELINES:
            dst = getattr(self, name)
            src = getattr(source, name)
            # expected inflation for round k was formed in round k - 1
            n = k + 1 if name == "expected_inflation" else k
            dst[:n] = src[:n]
            dst[n:] = 0.0
        self.t = through_round

    def fork(self, through_round: int | None = None) -> EconomyState:
        """
        Return an independent copy of this state's history.

        Parameters
        ----------
        through_round : int, optional
            Last round to keep. Defaults to the current round ``t``.
        """
        k = self.t if through_round is None else through_round
        copy = EconomyState.init(self.max_round)
        copy.copy_history_from(self, k)
        return copy

    # Read-only access
    # ---------------------------------------------------------------------
    def score(self) -> float:
        """Total (cumulative) loss at the current round."""
        return float(self.total_loss[self.t])

    def record(self, round: int | None = None) -> RoundRecord:
        """
        Build the read-only :class:`RoundRecord` of a finalized round.

        Parameters
        ----------
        round : int, optional
            Round to view. Defaults to the current round ``t``.

        Raises
        ------
        InvalidStateError
            If ``round`` has not been finalized yet.
        """
        r = self.t if round is None else round
        if not 0 <= r <= self.t:
            raise InvalidStateError(
                f"round {r} is not finalized (state is at round {self.t})"
            )
        return RoundRecord(
            round=r,
            monetary_loss=float(self.monetary_loss[r]),
            fiscal_loss=float(self.fiscal_loss[r]),
            total_loss=float(self.total_loss[r]),
            nominal_interest_rate=float(self.nominal_interest_rate[r]),
            government_spending=float(self.government_spending[r]),
            tax_rate=float(self.tax_rate[r]),
            expected_inflation=float(self.expected_inflation[r]),
            real_interest_rate=float(self.real_interest_rate[r]),
            full_employment_gdp=float(self.full_employment_gdp[r]),
            gdp=float(self.gdp[r]),
            fiscal_gdp_target=float(self.full_employment_gdp[r] * FISCAL_GDP_TARGET),
            consumption=float(self.consumption[r]),
            investment=float(self.investment[r]),
            unemployment_rate=float(self.unemployment_rate[r]),
            inflation=float(self.inflation[r]),
            price=float(self.price[r]),
            nominal_deficit=float(self.nominal_deficit[r]),
            bonds=float(self.bonds[r]),
            tax=float(self.tax[r]),
        )

    def as_dict(self) -> dict[str, Float1D]:
        """
        Copy the finalized history (rounds ``0..t``) of every timeline.

        ``expected_inflation`` includes the one-ahead slot ``t + 1``.
        """
        out: dict[str, Float1D] = {}
        for name in TIMELINES:
            n = self.t + 2 if name == "expected_inflation" else self.t + 1
            out[name] = getattr(self, name)[:n].copy()
        return out
