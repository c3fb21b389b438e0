"""
State transition: advance the economy by one round.

Given a state finalized through round ``t - 1`` and the instruments for
round ``t`` (nominal interest rate ``i`` and tax rate ``tau``), the round
is solved by the fixed system below, evaluated in this order::

    Y*[t]   = 1.02 Y*[t-1]                                   potential GDP
    G[t]    = 0.2 Y*[t]                                      gov. spending
    pe[t+1] = 0.7 pi[t-1] + 0.2 pe[t] + 0.1 * 0.02           expectations
    r[t]    = i[t] - pe[t+1]                                 real rate
    I[t]    = 363 + 2565 exp(-3.11 r[t])                     investment
    Y[t]    = (I + G + 2665 + 1422 exp(-3.11 r)) / (0.4 + 0.6 tau)
    C[t]    = 2665 + 0.6 (1 - tau) Y + 1422 exp(-3.11 r)     consumption
    T[t]    = Y tau                                          tax revenue
    pi[t]   = ln(Y / Y*) / 0.98 + pe[t]                      inflation
    P[t]    = P[t-1] (1 + pi)                                price level
    D[t]    = P G + i[t-1] B[t-1] - tau P Y                  nominal deficit
    B[t]    = B[t-1] + D                                     bonds
    u[t]    = 0.06 + 0.5 (Y* - Y) / Y*                 if Y* > Y
            = 0.06 (0.06 / (0.06 - 0.5 (Y* - Y) / Y*)) otherwise
    Lm[t]   = 1000 (u - 0.06)^2 + 1000 (pi - 0.02)^2 + Lm[t-1]
    Lf[t]   = 1000 ((Y - 1.01 Y*) / (1.01 Y*))^2
              + 1000 (B / (P Y) - 0.5)^2 + Lf[t-1]
    L[t]    = Lm + Lf

The unemployment rule is kept exactly as stated, including its jump at
``Y == Y*``. Constants are model parameters, not configuration.

:func:`evaluate_round` accepts scalar or 1-D instruments and broadcasts,
which lets the optimizer score a whole grid in one pass. :func:`advance`
is the scalar, state-returning form.

Non-finite results (log of a non-positive output ratio, zero denominators,
overflow) are not allowed to propagate silently: NumPy floating-point
warnings are suppressed inside the kernel and replaced by an explicit
finiteness mask that callers act on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import numpy as np

from macropolicy.errors import ConfigurationError, InvalidStateError, NumericDomainError
from macropolicy.logging import DEEP_DEBUG, getLogger
from macropolicy.state import TIMELINES, EconomyState
from macropolicy.typing import Bool1D, Float1D

__all__ = [
    "RoundValues",
    "ROUND_FIELDS",
    "evaluate_round",
    "materialize",
    "advance",
    "describe",
]

log = getLogger(__name__)

# ── model constants ──────────────────────────────────────────────────────
POTENTIAL_GROWTH = 1.02
GOV_SPENDING_SHARE = 0.2

INFLATION_TARGET = 0.02
INFLATION_PERSISTENCE = 0.7
EXPECTATION_PERSISTENCE = 0.2
ANCHOR_WEIGHT = 0.1

RATE_SENSITIVITY = 3.11
INVESTMENT_BASE = 363.0
INVESTMENT_SCALE = 2565.0
AUTONOMOUS_CONSUMPTION = 2665.0
RATE_CONSUMPTION_SCALE = 1422.0
MPC = 0.6
MULTIPLIER_BASE = 0.4

PHILLIPS_SLOPE = 0.98

NATURAL_UNEMPLOYMENT = 0.06
OKUN_COEFFICIENT = 0.5

LOSS_WEIGHT = 1000.0
FISCAL_GDP_TARGET = 1.01
DEBT_RATIO_TARGET = 0.5

DOMAIN_POLICIES = ("raise", "warn")

# Timelines written at slot t (expected inflation is written at t + 1)
ROUND_FIELDS: tuple[str, ...] = tuple(n for n in TIMELINES if n != "expected_inflation")


@dataclass(slots=True)
class RoundValues:
    """
    Round ``t`` quantities for one or many instrument pairs.

    Attributes
    ----------
    round : int
        Round the values belong to.
    values : dict[str, Float1D]
        One entry per name in :data:`ROUND_FIELDS`, every array of the
        instrument shape ``(n,)``.
    expected_inflation_next : float
        Expectation for round ``t + 1``; instrument-independent.
    finite : Bool1D
        ``True`` where every quantity of that candidate is finite.
    """

    round: int
    values: dict[str, Float1D]
    expected_inflation_next: float
    finite: Bool1D

    @property
    def size(self) -> int:
        """Number of evaluated instrument pairs."""
        return int(self.finite.shape[0])

    @property
    def total_loss(self) -> Float1D:
        return self.values["total_loss"]

    def non_finite_fields(self, index: int) -> list[str]:
        """Names of the quantities that are non-finite for candidate ``index``."""
        bad = [
            name for name, arr in self.values.items() if not np.isfinite(arr[index])
        ]
        if not np.isfinite(self.expected_inflation_next):
            bad.append("expected_inflation")
        return bad


def evaluate_round(
    state: EconomyState,
    nominal_rate: float | Float1D,
    tax_rate: float | Float1D,
) -> RoundValues:
    """
    Evaluate round ``state.t + 1`` without modifying ``state``.

    Parameters
    ----------
    state : EconomyState
        History through round ``t - 1`` (read-only).
    nominal_rate, tax_rate : float or Float1D
        Instruments for round ``t``; scalars or 1-D arrays that broadcast
        against each other.

    Returns
    -------
    RoundValues
        Values of round ``t`` for every instrument pair, with a finite-mask.

    Raises
    ------
    InvalidStateError
        If ``state`` has no free slot left.
    """
    t = state.t + 1
    if t > state.max_round:
        raise InvalidStateError(
            f"state is at its last round ({state.max_round}); cannot advance"
        )

    i, tau = np.broadcast_arrays(
        np.atleast_1d(np.asarray(nominal_rate, dtype=np.float64)),
        np.atleast_1d(np.asarray(tax_rate, dtype=np.float64)),
    )
    if i.ndim != 1:
        raise ValueError(f"instruments must be scalars or 1-D arrays, got {i.shape}")

    # prior-round inputs
    y_star_prev = float(state.full_employment_gdp[t - 1])
    inflation_prev = float(state.inflation[t - 1])
    expected_inflation = float(state.expected_inflation[t])
    price_prev = float(state.price[t - 1])
    bonds_prev = float(state.bonds[t - 1])
    rate_prev = float(state.nominal_interest_rate[t - 1])
    lm_prev = float(state.monetary_loss[t - 1])
    lf_prev = float(state.fiscal_loss[t - 1])

    with np.errstate(all="ignore"):
        y_star = y_star_prev * POTENTIAL_GROWTH
        g = y_star * GOV_SPENDING_SHARE

        expected_next = (
            inflation_prev * INFLATION_PERSISTENCE
            + expected_inflation * EXPECTATION_PERSISTENCE
            + ANCHOR_WEIGHT * INFLATION_TARGET
        )

        real_rate = i - expected_next
        rate_effect = np.exp(-RATE_SENSITIVITY * real_rate)
        investment = INVESTMENT_BASE + INVESTMENT_SCALE * rate_effect

        # goods-market equilibrium Y = C + I + G, solved for Y
        gdp = (
            investment
            + g
            + AUTONOMOUS_CONSUMPTION
            + RATE_CONSUMPTION_SCALE * rate_effect
        ) / (MULTIPLIER_BASE + MPC * tau)
        consumption = (
            AUTONOMOUS_CONSUMPTION
            + MPC * (1.0 - tau) * gdp
            + RATE_CONSUMPTION_SCALE * rate_effect
        )
        tax = gdp * tau

        inflation = np.log(gdp / y_star) / PHILLIPS_SLOPE + expected_inflation
        price = price_prev * (1.0 + inflation)

        deficit = price * g + rate_prev * bonds_prev - tau * price * gdp
        bonds = bonds_prev + deficit

        unemployment = np.where(
            y_star > gdp,
            NATURAL_UNEMPLOYMENT + OKUN_COEFFICIENT * (y_star - gdp) / y_star,
            NATURAL_UNEMPLOYMENT
            * (
                NATURAL_UNEMPLOYMENT
                / (NATURAL_UNEMPLOYMENT - OKUN_COEFFICIENT * ((y_star - gdp) / y_star))
            ),
        )

        lm = (
            LOSS_WEIGHT * (unemployment - NATURAL_UNEMPLOYMENT) ** 2
            + LOSS_WEIGHT * (inflation - INFLATION_TARGET) ** 2
            + lm_prev
        )
        fiscal_target = FISCAL_GDP_TARGET * y_star
        lf = (
            LOSS_WEIGHT * ((gdp - fiscal_target) / fiscal_target) ** 2
            + LOSS_WEIGHT * ((bonds / (price * gdp)) - DEBT_RATIO_TARGET) ** 2
            + lf_prev
        )
        total = lm + lf

    shape = i.shape
    values: dict[str, Float1D] = {
        "tax_rate": tau,
        "tax": tax,
        "gdp": gdp,
        "consumption": consumption,
        "real_interest_rate": real_rate,
        "nominal_interest_rate": i,
        "inflation": inflation,
        "investment": investment,
        "government_spending": np.broadcast_to(g, shape),
        "full_employment_gdp": np.broadcast_to(y_star, shape),
        "price": price,
        "nominal_deficit": deficit,
        "bonds": bonds,
        "unemployment_rate": unemployment,
        "monetary_loss": lm,
        "fiscal_loss": lf,
        "total_loss": total,
    }

    finite = np.logical_and.reduce([np.isfinite(v) for v in values.values()])
    if not np.isfinite(expected_next):
        finite = np.zeros(shape, dtype=np.bool_)

    if log.isEnabledFor(DEEP_DEBUG) and shape[0] == 1:
        log.deep("  ----- Round %d equations -----", t)
        for name in ROUND_FIELDS:
            log.deep("  %s = %r", name, float(values[name][0]))
        log.deep("  expected_inflation[t+1] = %r", expected_next)
    elif log.isEnabledFor(logging.DEBUG):
        log.debug(
            "  Evaluated round %d for %d instrument pair(s), %d non-finite",
            t,
            shape[0],
            int(shape[0] - finite.sum()),
        )

    return RoundValues(
        round=t,
        values=values,
        expected_inflation_next=float(expected_next),
        finite=finite,
    )


def materialize(
    state: EconomyState, round_values: RoundValues, index: int = 0
) -> EconomyState:
    """
    Return a fork of ``state`` extended by candidate ``index`` of ``round_values``.

    Parameters
    ----------
    state : EconomyState
        The state ``round_values`` was evaluated against.
    round_values : RoundValues
        Output of :func:`evaluate_round`.
    index : int
        Which candidate to write.

    Raises
    ------
    InvalidStateError
        If ``round_values`` does not belong to round ``state.t + 1``.
    """
    t = round_values.round
    if state.t != t - 1:
        raise InvalidStateError(
            f"values are for round {t} but state is at round {state.t}"
        )

    nxt = state.fork()
    for name in ROUND_FIELDS:
        getattr(nxt, name)[t] = round_values.values[name][index]
    nxt.expected_inflation[t + 1] = round_values.expected_inflation_next
    nxt.t = t
    return nxt


def advance(
    state: EconomyState,
    nominal_rate: float,
    tax_rate: float,
    *,
    round: int | None = None,
    on_domain_error: str = "raise",
) -> EconomyState:
    """
    Advance ``state`` by one round with the given instruments.

    The input state is not modified; the returned state is an independent
    fork whose round pointer is ``state.t + 1``.

    Parameters
    ----------
    state : EconomyState
        History finalized through round ``t - 1``.
    nominal_rate : float
        Nominal interest rate for round ``t``.
    tax_rate : float
        Tax rate for round ``t``.
    round : int, optional
        Expected target round. When given, ``state.t`` must equal
        ``round - 1``.
    on_domain_error : {"raise", "warn"}
        What to do if the round comes out non-finite: raise
        :class:`NumericDomainError`, or log a warning and return the
        non-finite state.

    Returns
    -------
    EconomyState
        The advanced state.

    Raises
    ------
    InvalidStateError
        If ``round`` does not follow ``state.t`` or the timeline is full.
    NumericDomainError
        If a quantity is non-finite and ``on_domain_error="raise"``.

    Examples
    --------
    >>> from macropolicy.state import EconomyState
    >>> s1 = advance(EconomyState.init(2), 0.05, 0.2)
    >>> s1.t
    1
    """
    if on_domain_error not in DOMAIN_POLICIES:
        raise ConfigurationError(
            f"on_domain_error must be one of {DOMAIN_POLICIES}, "
            f"got {on_domain_error!r}"
        )
    if round is not None and state.t != round - 1:
        raise InvalidStateError(
            f"cannot advance to round {round}: state is at round {state.t}"
        )

    rv = evaluate_round(state, float(nominal_rate), float(tax_rate))
    if not rv.finite[0]:
        bad = rv.non_finite_fields(0)
        detail = f"nominal_rate={nominal_rate!r}, tax_rate={tax_rate!r}"
        if on_domain_error == "raise":
            raise NumericDomainError(rv.round, bad, detail)
        log.warning(
            "Round %d has non-finite values (%s) for %s",
            rv.round,
            ", ".join(bad),
            detail,
        )

    return materialize(state, rv, 0)


def describe(values: RoundValues, index: int) -> dict[str, Any]:
    """Plain ``{name: float}`` snapshot of one candidate, for log messages."""
    out: dict[str, Any] = {n: float(values.values[n][index]) for n in ROUND_FIELDS}
    out["expected_inflation_next"] = values.expected_inflation_next
    return out
