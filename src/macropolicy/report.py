"""
Tab-separated round report.

Renders finalized :class:`~macropolicy.state.RoundRecord` objects, one row
per round. Rates are printed as percentages with two decimals
(``0.0512`` → ``5.12%``); levels and losses with thousands separators and
two decimals (``18360.0`` → ``18,360.00``).
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, TextIO

from macropolicy.state import RoundRecord

if TYPE_CHECKING:  # pragma: no cover
    from macropolicy.results import SearchResults

__all__ = ["COLUMNS", "header", "format_record", "write_report"]

PERCENT = "percent"
LEVEL = "level"

# (header, record field, kind), in output order
COLUMNS: tuple[tuple[str, str, str], ...] = (
    ("MonetaryScore", "monetary_loss", LEVEL),
    ("FiscalScore", "fiscal_loss", LEVEL),
    ("TotalScore", "total_loss", LEVEL),
    ("InterestRate", "nominal_interest_rate", PERCENT),
    ("GovPurchase", "government_spending", LEVEL),
    ("TaxRate", "tax_rate", PERCENT),
    ("ExpectedInflation", "expected_inflation", PERCENT),
    ("RealInterest", "real_interest_rate", PERCENT),
    ("FullGDP", "full_employment_gdp", LEVEL),
    ("RealGDP", "gdp", LEVEL),
    ("FiscalGDP", "fiscal_gdp_target", LEVEL),
    ("Consumption", "consumption", LEVEL),
    ("Investment", "investment", LEVEL),
    ("Unemployment", "unemployment_rate", PERCENT),
    ("Inflation", "inflation", PERCENT),
    ("Price", "price", LEVEL),
    ("Deficit", "nominal_deficit", LEVEL),
    ("Bonds", "bonds", LEVEL),
)


def _fmt(value: float, kind: str) -> str:
    if kind == PERCENT:
        return f"{value:.2%}"
    return f"{value:,.2f}"


def header() -> str:
    """Header row."""
    return "\t".join(["Round", *(name for name, _, _ in COLUMNS)])


def format_record(record: RoundRecord) -> str:
    """
    Format one round as a tab-separated row.

    Examples
    --------
    >>> from macropolicy.state import EconomyState
    >>> format_record(EconomyState.init(1).record()).split("\\t")[:5]
    ['0', '0.00', '0.00', '0.00', '5.00%']
    """
    cells = [str(record.round)]
    cells.extend(_fmt(getattr(record, attr), kind) for _, attr, kind in COLUMNS)
    return "\t".join(cells)


def write_report(
    source: SearchResults | Iterable[RoundRecord],
    stream: TextIO,
) -> int:
    """
    Write the header and one row per round to ``stream``.

    Parameters
    ----------
    source : SearchResults or iterable of RoundRecord
        Rounds to render.
    stream : TextIO
        Destination.

    Returns
    -------
    int
        Number of rows written (excluding the header).
    """
    records = getattr(source, "records", source)
    stream.write(header() + "\n")
    n = 0
    for record in records:
        stream.write(format_record(record) + "\n")
        n += 1
    return n
