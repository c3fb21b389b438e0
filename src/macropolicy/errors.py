"""
Error taxonomy for MacroPolicy.

- :class:`InvalidStateError` : a transition was requested on a state that is
  not at the expected round, or a timeline bound was exceeded. Fatal.
- :class:`NumericDomainError` : a transition produced non-finite values
  (logarithm of a non-positive ratio, zero denominator, overflow).
- :class:`ConfigurationError` : malformed or out-of-range configuration,
  reported before any round executes.

The model is deterministic, so none of these are retried.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any


class MacroPolicyError(Exception):
    """Base class for all MacroPolicy errors."""


class InvalidStateError(MacroPolicyError, RuntimeError):
    """State timeline used out of order or beyond its capacity."""


class NumericDomainError(MacroPolicyError, ArithmeticError):
    """
    A round evaluation produced non-finite values.

    Parameters
    ----------
    round : int
        Round whose evaluation failed.
    fields : iterable of str
        Names of the quantities that came out non-finite.
    detail : str, optional
        Extra context appended to the message.
    """

    def __init__(self, round: int, fields: Iterable[str], detail: str = "") -> None:
        self.round = round
        self.fields = tuple(fields)
        self.detail = detail
        msg = f"non-finite values in round {round}: {', '.join(self.fields)}"
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(msg)

    def __reduce__(self) -> tuple[Any, ...]:
        # worker processes send this back through pickle
        return (type(self), (self.round, self.fields, self.detail))


class ConfigurationError(MacroPolicyError, ValueError):
    """Configuration rejected by :class:`~macropolicy.config.ConfigValidator`."""
