# src/macropolicy/search.py
from __future__ import annotations

from importlib import resources
from pathlib import Path
from typing import Any, Dict, Mapping

# noinspection PyPackageRequirements
import yaml

from macropolicy import logging as mp_logging
from macropolicy.config import Config, ConfigValidator
from macropolicy.errors import ConfigurationError, InvalidStateError
from macropolicy.grid import InstrumentGrid
from macropolicy.logging import getLogger
from macropolicy.optimizer import GridSearchOptimizer, RoundOutcome
from macropolicy.results import SearchResults
from macropolicy.state import EconomyState

__all__ = ["PolicySearch"]

log = getLogger(__name__)


# helpers
# ---------------------------------------------------------------------------
def _read_yaml(obj: str | Path | Mapping[str, Any] | None) -> Dict[str, Any]:
    """Return a plain dict – {} if *obj* is None."""
    if obj is None:
        return {}
    if isinstance(obj, Mapping):
        return dict(obj)
    p = Path(obj)
    try:
        with p.open("rt", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    except OSError as exc:
        raise ConfigurationError(f"cannot read config file {p}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"malformed YAML in {p}: {exc}") from exc
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"config root must be mapping, got {type(data)!r}")
    return dict(data)


def _package_defaults() -> Dict[str, Any]:
    """Load macropolicy/defaults.yml"""
    txt = resources.files("macropolicy").joinpath("defaults.yml").read_text()
    return yaml.safe_load(txt) or {}


def _merge_layer(cfg: Dict[str, Any], layer: Mapping[str, Any]) -> None:
    """
    Update *cfg* with *layer* in place.

    The ``logging`` block is merged rather than replaced, so a later
    ``default_level`` keeps the per-component levels of earlier layers.
    """
    for key, value in layer.items():
        base = cfg.get(key)
        if (
            key == "logging"
            and isinstance(base, Mapping)
            and isinstance(value, Mapping)
        ):
            merged = dict(base)
            merged.update(value)
            components = base.get("components")
            if isinstance(components, Mapping) and isinstance(
                value.get("components"), Mapping
            ):
                merged["components"] = {**components, **value["components"]}
            cfg[key] = merged
        else:
            cfg[key] = value


# PolicySearch
# ---------------------------------------------------------------------
class PolicySearch:
    """
    Facade that drives the grid search through consecutive rounds.

    One call to `run` → one call to `step` per remaining round. Each step
    searches the next round against the current baseline and replaces the
    baseline with the winner; baselines are never modified in place.

    Examples
    --------
    >>> import macropolicy as mp
    >>> search = mp.PolicySearch.init(max_round=3)
    >>> results = search.run()
    >>> len(results)
    3
    """

    __slots__ = ("config", "grid", "optimizer", "_baseline", "_outcomes")

    def __init__(
        self,
        config: Config,
        grid: InstrumentGrid,
        optimizer: GridSearchOptimizer,
        baseline: EconomyState,
    ) -> None:
        self.config = config
        self.grid = grid
        self.optimizer = optimizer
        self._baseline = baseline
        self._outcomes: list[RoundOutcome] = []

    # Constructor
    # ---------------------------------------------------------------------
    @classmethod
    def init(
        cls,
        config: str | Path | Mapping[str, Any] | None = None,
        **overrides: Any,  # anything here wins last
    ) -> "PolicySearch":
        """
        Build a PolicySearch.

        Order of precedence (later overrides earlier):

            1. package defaults  (macropolicy/defaults.yml)
            2. *config*  (Path / str / Mapping / None)
            3. explicit keyword arguments (**overrides)

        A ``logging`` block is merged key by key across the layers.

        Raises
        ------
        ConfigurationError
            If the merged configuration is invalid. Nothing has run yet.
        """
        # 1 + 2 + 3 → one merged dict
        cfg_dict: Dict[str, Any] = _package_defaults()
        for layer in (_read_yaml(config), overrides):
            _merge_layer(cfg_dict, layer)

        # Validate configuration (centralized validation)
        ConfigValidator.validate_config(cfg_dict)

        log_config = cfg_dict.pop("logging", None)
        if log_config is not None:
            mp_logging.configure(log_config)

        cfg = Config(**cfg_dict)
        grid = InstrumentGrid.from_bounds(
            cfg.rate_min,
            cfg.rate_max,
            cfg.rate_step,
            cfg.tax_min,
            cfg.tax_max,
            cfg.tax_step,
        )
        optimizer = GridSearchOptimizer(
            grid,
            strategy=cfg.strategy,
            n_workers=cfg.n_workers,
            on_domain_error=cfg.on_domain_error,
        )

        log.debug("Initialized %r for %d rounds", optimizer, cfg.max_round)

        return cls(
            config=cfg,
            grid=grid,
            optimizer=optimizer,
            baseline=EconomyState.init(cfg.max_round),
        )

    # read-only accessors
    # ---------------------------------------------------------------------
    @property
    def baseline(self) -> EconomyState:
        """Best-known state through the last searched round."""
        return self._baseline

    @property
    def t(self) -> int:
        """Last searched round (0 before the first step)."""
        return self._baseline.t

    @property
    def outcomes(self) -> list[RoundOutcome]:
        """Outcomes of the rounds searched so far (a copy)."""
        return list(self._outcomes)

    @property
    def done(self) -> bool:
        return self._baseline.t >= self.config.max_round

    # public API
    # ---------------------------------------------------------------------
    def step(self) -> RoundOutcome:
        """
        Search the next round and make its winner the new baseline.

        Raises
        ------
        InvalidStateError
            If every round up to ``max_round`` has been searched.
        """
        if self.done:
            raise InvalidStateError(
                f"all {self.config.max_round} rounds have been searched"
            )

        outcome = self.optimizer.search(self._baseline)
        self._baseline = outcome.state
        self._outcomes.append(outcome)

        log.info(
            "Round %d: i=%.2f%% tau=%.2f%% loss=%.4f",
            outcome.round,
            outcome.nominal_rate * 100,
            outcome.tax_rate * 100,
            outcome.total_loss,
        )
        return outcome

    def run(self, n_rounds: int | None = None) -> SearchResults:
        """
        Search *n_rounds* more rounds (defaults to all remaining rounds).

        Returns
        -------
        SearchResults
            Every round searched so far, including earlier steps.
        """
        remaining = self.config.max_round - self._baseline.t
        n = remaining if n_rounds is None else int(n_rounds)
        if n < 0 or n > remaining:
            raise InvalidStateError(
                f"cannot search {n} more round(s); {remaining} remaining"
            )

        for _ in range(n):
            self.step()

        return SearchResults(outcomes=list(self._outcomes), state=self._baseline)
