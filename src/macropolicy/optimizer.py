"""
Greedy grid-search optimizer.

For round ``r`` the optimizer takes the best-known state through round
``r - 1`` (the *baseline*), scores every instrument pair of the grid
against that same baseline, and keeps the pair with the smallest
cumulative total loss ``L[r]``. Candidates are ranked by the key
``(loss, enumeration_index)``, so equal losses resolve to the candidate
enumerated first (interest rate ascending, then tax rate ascending)
regardless of evaluation order.

Two strategies produce the same winner:

- ``"vectorized"``: one :func:`~macropolicy.transition.evaluate_round`
  call over the flattened grid.
- ``"exhaustive"``: fork the baseline and :func:`~macropolicy.transition.advance`
  once per grid point, optionally split into chunks over worker processes.

The baseline is only read; the winner is a new state.
"""

from __future__ import annotations

import logging
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass

import numpy as np

from macropolicy.errors import ConfigurationError, InvalidStateError, NumericDomainError
from macropolicy.grid import InstrumentGrid
from macropolicy.logging import DEEP_DEBUG, getLogger
from macropolicy.state import EconomyState, RoundRecord
from macropolicy.transition import advance, describe, evaluate_round, materialize
from macropolicy.typing import Float1D, Idx1D

__all__ = ["GridSearchOptimizer", "RoundOutcome", "rank_candidates"]

log = getLogger(__name__)

STRATEGIES = ("vectorized", "exhaustive")

# Chunks handed to each worker process in the exhaustive strategy
_CHUNKS_PER_WORKER = 4

# (loss, enumeration index) of the best finite candidate seen
_Key = tuple[float, int]


@dataclass(slots=True, frozen=True, eq=False)
class RoundOutcome:
    """
    Result of one round of grid search.

    Attributes
    ----------
    round : int
        Round that was searched.
    state : EconomyState
        Winning state, finalized through ``round``; next round's baseline.
    index : int
        Enumeration index of the winning grid point.
    nominal_rate, tax_rate : float
        Winning instruments.
    total_loss : float
        Cumulative total loss of the winner at ``round``.
    n_evaluated : int
        Number of grid points scored.
    n_rejected : int
        Candidates dropped because they came out non-finite.
    """

    round: int
    state: EconomyState
    index: int
    nominal_rate: float
    tax_rate: float
    total_loss: float
    n_evaluated: int
    n_rejected: int = 0

    @property
    def record(self) -> RoundRecord:
        """Read-only view of the winning round."""
        return self.state.record(self.round)


def rank_candidates(totals: Float1D) -> Idx1D:
    """
    Order candidates by ``(loss, enumeration_index)``.

    Non-finite losses rank after every finite one. The explicit index key
    makes the order independent of the sorting algorithm's stability.

    Parameters
    ----------
    totals : Float1D
        Loss per candidate, indexed by enumeration index.

    Returns
    -------
    Idx1D
        Candidate indices, best first.

    Examples
    --------
    >>> rank_candidates(np.array([2.0, 1.0, 1.0, np.nan])).tolist()
    [1, 2, 0, 3]
    """
    totals = np.asarray(totals, dtype=np.float64)
    finite = np.isfinite(totals)
    keys = np.where(finite, totals, np.inf)
    index = np.arange(totals.size)
    # lexsort: last key is primary
    return np.lexsort((index, ~finite, keys)).astype(np.intp)


def _evaluate_chunk(
    baseline: EconomyState,
    rates: Float1D,
    tax_rates: Float1D,
    offset: int,
    on_domain_error: str,
) -> tuple[_Key | None, int, tuple[int, tuple[str, ...]] | None]:
    """
    Fork-and-advance every candidate of a contiguous slice of the grid.

    Module-level so worker processes can unpickle it.

    Returns
    -------
    best : (loss, index) or None
        Best finite candidate of the slice.
    n_rejected : int
        Non-finite candidates (only counted under ``on_domain_error="warn"``).
    first_rejected : (index, fields) or None
        First non-finite candidate, for the warning message.
    """
    target = baseline.t + 1
    best: _Key | None = None
    n_rejected = 0
    first_rejected: tuple[int, tuple[str, ...]] | None = None

    for j in range(rates.size):
        k = offset + j
        try:
            candidate = advance(
                baseline, float(rates[j]), float(tax_rates[j]), round=target
            )
        except NumericDomainError as exc:
            if on_domain_error == "raise":
                raise NumericDomainError(
                    exc.round, exc.fields, f"grid index {k}, {exc.detail}"
                ) from exc
            n_rejected += 1
            if first_rejected is None:
                first_rejected = (k, exc.fields)
            continue

        key = (candidate.score(), k)
        if best is None or key < best:
            best = key

    return best, n_rejected, first_rejected


class GridSearchOptimizer:
    """
    Exhaustive search of an :class:`~macropolicy.grid.InstrumentGrid`.

    Parameters
    ----------
    grid : InstrumentGrid
        Candidate instruments.
    strategy : {"vectorized", "exhaustive"}
        How candidates are evaluated. Both select the same winner.
    n_workers : int
        Worker processes for the exhaustive strategy (1 = in-process).
    on_domain_error : {"raise", "warn"}
        ``"raise"`` aborts the round on the first non-finite candidate;
        ``"warn"`` drops non-finite candidates and logs how many.

    Examples
    --------
    >>> from macropolicy.grid import InstrumentGrid
    >>> from macropolicy.state import EconomyState
    >>> grid = InstrumentGrid.from_bounds(-0.01, 0.20, 0.01, 0.0, 0.40, 0.01)
    >>> opt = GridSearchOptimizer(grid)
    >>> outcome = opt.search(EconomyState.init(max_round=3))
    >>> outcome.round
    1
    """

    def __init__(
        self,
        grid: InstrumentGrid,
        *,
        strategy: str = "vectorized",
        n_workers: int = 1,
        on_domain_error: str = "raise",
    ) -> None:
        if strategy not in STRATEGIES:
            raise ConfigurationError(
                f"strategy must be one of {STRATEGIES}, got {strategy!r}"
            )
        if on_domain_error not in ("raise", "warn"):
            raise ConfigurationError(
                f"on_domain_error must be 'raise' or 'warn', got {on_domain_error!r}"
            )
        if n_workers < 1:
            raise ConfigurationError(f"n_workers must be >= 1, got {n_workers}")

        self.grid = grid
        self.strategy = strategy
        self.n_workers = n_workers
        self.on_domain_error = on_domain_error
        self._rates, self._tax_rates = grid.points()

    def __repr__(self) -> str:
        return (
            f"GridSearchOptimizer({self.grid!r}, strategy={self.strategy!r}, "
            f"n_workers={self.n_workers}, on_domain_error={self.on_domain_error!r})"
        )

    # public API
    # ---------------------------------------------------------------------
    def search(self, baseline: EconomyState) -> RoundOutcome:
        """
        Find the best instruments for round ``baseline.t + 1``.

        Parameters
        ----------
        baseline : EconomyState
            Best-known state through the previous round. Not modified.

        Returns
        -------
        RoundOutcome
            The winning state and its instruments.

        Raises
        ------
        InvalidStateError
            If ``baseline`` has no free round left.
        NumericDomainError
            If a candidate is non-finite under ``on_domain_error="raise"``,
            or no candidate is finite.
        """
        if baseline.t >= baseline.max_round:
            raise InvalidStateError(
                f"baseline is at its last round ({baseline.max_round}); "
                "nothing left to search"
            )

        log.debug(
            "  ----- Searching round %d (%s, %d candidates) -----",
            baseline.t + 1,
            self.strategy,
            self.grid.size,
        )

        if self.strategy == "vectorized":
            outcome = self._search_vectorized(baseline)
        else:
            outcome = self._search_exhaustive(baseline)

        log.debug(
            "  Round %d winner: index=%d, i=%.4f, tau=%.4f, loss=%.6f",
            outcome.round,
            outcome.index,
            outcome.nominal_rate,
            outcome.tax_rate,
            outcome.total_loss,
        )
        return outcome

    # strategies
    # ---------------------------------------------------------------------
    def _search_vectorized(self, baseline: EconomyState) -> RoundOutcome:
        rv = evaluate_round(baseline, self._rates, self._tax_rates)

        n_rejected = int(rv.size - np.count_nonzero(rv.finite))
        if n_rejected:
            first = int(np.flatnonzero(~rv.finite)[0])
            self._handle_rejected(
                rv.round, n_rejected, first, tuple(rv.non_finite_fields(first))
            )

        order = rank_candidates(np.where(rv.finite, rv.total_loss, np.nan))
        best = int(order[0])
        if not rv.finite[best]:
            raise NumericDomainError(
                rv.round, ("total_loss",), "no finite candidate in the grid"
            )

        if log.isEnabledFor(DEEP_DEBUG):
            log.deep("  Winner values: %s", describe(rv, best))

        state = materialize(baseline, rv, best)
        return self._outcome(state, best, n_rejected)

    def _search_exhaustive(self, baseline: EconomyState) -> RoundOutcome:
        results = []
        if self.n_workers == 1:
            results.append(
                _evaluate_chunk(
                    baseline, self._rates, self._tax_rates, 0, self.on_domain_error
                )
            )
        else:
            n_chunks = min(self.grid.size, self.n_workers * _CHUNKS_PER_WORKER)
            chunks = np.array_split(np.arange(self.grid.size), n_chunks)
            with ProcessPoolExecutor(max_workers=self.n_workers) as pool:
                futures = [
                    pool.submit(
                        _evaluate_chunk,
                        baseline,
                        self._rates[idx],
                        self._tax_rates[idx],
                        int(idx[0]),
                        self.on_domain_error,
                    )
                    for idx in chunks
                    if idx.size
                ]
                # chunk order is irrelevant: keys carry the enumeration index
                results = [f.result() for f in futures]

        target = baseline.t + 1
        n_rejected = sum(r[1] for r in results)
        if n_rejected:
            first_index, fields = min(r[2] for r in results if r[2] is not None)
            self._handle_rejected(target, n_rejected, first_index, fields)

        keys = [r[0] for r in results if r[0] is not None]
        if not keys:
            raise NumericDomainError(
                target, ("total_loss",), "no finite candidate in the grid"
            )
        _, best = min(keys)

        rate, tax = self.grid.point(best)
        state = advance(baseline, rate, tax, round=target)
        return self._outcome(state, best, n_rejected)

    # helpers
    # ---------------------------------------------------------------------
    def _outcome(
        self, state: EconomyState, index: int, n_rejected: int
    ) -> RoundOutcome:
        rate, tax = self.grid.point(index)
        return RoundOutcome(
            round=state.t,
            state=state,
            index=index,
            nominal_rate=rate,
            tax_rate=tax,
            total_loss=state.score(),
            n_evaluated=self.grid.size,
            n_rejected=n_rejected,
        )

    def _handle_rejected(
        self,
        round: int,
        n_rejected: int,
        first_index: int,
        fields: tuple[str, ...],
    ) -> None:
        rate, tax = self.grid.point(first_index)
        detail = (
            f"{n_rejected} of {self.grid.size} candidates, first at grid index "
            f"{first_index} (nominal_rate={rate!r}, tax_rate={tax!r})"
        )
        if self.on_domain_error == "raise":
            raise NumericDomainError(round, fields, detail)
        if log.isEnabledFor(logging.WARNING):
            log.warning(
                "Round %d: dropped non-finite candidates: %s; fields: %s",
                round,
                detail,
                ", ".join(fields),
            )
