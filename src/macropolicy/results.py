"""
Search results container for MacroPolicy.

This module provides the SearchResults class that holds the per-round
outcomes of a run and offers convenient access to the policy-optimal
trajectory, plus export to a pandas DataFrame.

Note: pandas is an optional dependency. It is only required for
``to_dataframe``. Install with: pip install macropolicy[pandas]
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import numpy as np

from macropolicy.state import TIMELINES, EconomyState, RoundRecord
from macropolicy.typing import Float1D

if TYPE_CHECKING:  # pragma: no cover
    from pandas import DataFrame

    from macropolicy.optimizer import RoundOutcome

__all__ = ["SearchResults"]


def _import_pandas() -> Any:
    """
    Lazily import pandas with helpful error message if not installed.

    Raises
    ------
    ImportError
        If pandas is not installed.
    """
    try:
        import pandas as pd

        return pd
    except ImportError:  # pragma: no cover
        raise ImportError(
            "pandas is required for DataFrame export. "
            "Install it with: pip install pandas"
        ) from None


@dataclass(slots=True)
class SearchResults:
    """
    Outcome of a policy search run.

    Attributes
    ----------
    outcomes : list[RoundOutcome]
        One entry per searched round, in round order.
    state : EconomyState
        Final winning state; its history is the policy-optimal trajectory.

    Examples
    --------
    >>> import macropolicy as mp
    >>> results = mp.PolicySearch.init(max_round=3).run()
    >>> results.trajectory("gdp").shape
    (3,)
    """

    outcomes: list[RoundOutcome] = field(default_factory=list)
    state: EconomyState | None = None

    def __len__(self) -> int:
        return len(self.outcomes)

    def __repr__(self) -> str:
        if not self.outcomes:
            return "SearchResults(rounds=0)"
        last = self.outcomes[-1]
        return (
            f"SearchResults(rounds={len(self.outcomes)}, "
            f"final_total_loss={last.total_loss:.4f})"
        )

    @property
    def records(self) -> list[RoundRecord]:
        """Read-only record of every searched round."""
        return [o.record for o in self.outcomes]

    @property
    def winners(self) -> list[tuple[float, float, float]]:
        """``(nominal_rate, tax_rate, total_loss)`` chosen in each round."""
        return [(o.nominal_rate, o.tax_rate, o.total_loss) for o in self.outcomes]

    def trajectory(self, name: str) -> Float1D:
        """
        Values of one variable over the searched rounds ``1..t``.

        Parameters
        ----------
        name : str
            Timeline name (e.g. ``"gdp"``) or ``"fiscal_gdp_target"``.

        Raises
        ------
        KeyError
            If ``name`` is not a known variable.
        """
        if name not in TIMELINES and name != "fiscal_gdp_target":
            raise KeyError(
                f"Unknown variable '{name}'. Available: {sorted(TIMELINES)}"
            )
        return np.array([getattr(r, name) for r in self.records], dtype=np.float64)

    def to_dataframe(self) -> DataFrame:
        """
        Export the per-round records as a pandas DataFrame indexed by round.

        Returns
        -------
        pandas.DataFrame
            One row per searched round, one column per record field.
        """
        pd = _import_pandas()
        rows = [r.as_dict() for r in self.records]
        df = pd.DataFrame(rows)
        if not df.empty:
            df = df.set_index("round")
        return df
