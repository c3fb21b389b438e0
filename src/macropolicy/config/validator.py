"""Centralized configuration validation for MacroPolicy."""

from __future__ import annotations

import math
import warnings
from typing import Any

from macropolicy.errors import ConfigurationError
from macropolicy.grid import MAX_GRID_POINTS, axis_size

# Grids beyond this many points are accepted but flagged
LARGE_GRID_WARNING = 5_000_000


class ConfigValidator:
    """
    Centralized validation for run configuration.

    All validation happens once at PolicySearch.init() to ensure:
    - No unknown keys
    - Type correctness
    - Valid parameter ranges
    - Relationship constraints between parameters
    - Clear error messages with actionable feedback

    Every failure raises :class:`~macropolicy.errors.ConfigurationError`
    (a ``ValueError``) before any round executes.
    """

    KNOWN_KEYS = {
        "max_round",
        "rate_min",
        "rate_max",
        "rate_step",
        "tax_min",
        "tax_max",
        "tax_step",
        "strategy",
        "n_workers",
        "on_domain_error",
        "logging",
    }

    VALID_STRATEGIES = {"vectorized", "exhaustive"}
    VALID_DOMAIN_POLICIES = {"raise", "warn"}

    # Valid log levels for logging configuration
    VALID_LOG_LEVELS = {"DEEP_DEBUG", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

    @staticmethod
    def validate_config(cfg: dict[str, Any]) -> None:
        """
        Validate all configuration parameters.

        Parameters
        ----------
        cfg : dict
            Configuration dictionary to validate.

        Raises
        ------
        ConfigurationError
            If any validation check fails.
        """
        unknown = set(cfg) - ConfigValidator.KNOWN_KEYS
        if unknown:
            raise ConfigurationError(
                f"Unknown config parameter(s): {sorted(unknown)}. "
                f"Known parameters: {sorted(ConfigValidator.KNOWN_KEYS)}"
            )

        # Type checking
        ConfigValidator._validate_types(cfg)

        # Range validation
        ConfigValidator._validate_ranges(cfg)

        # Relationship constraints
        ConfigValidator._validate_relationships(cfg)

        # Logging configuration
        if "logging" in cfg:
            ConfigValidator._validate_logging(cfg["logging"])

    @staticmethod
    def _validate_types(cfg: dict[str, Any]) -> None:
        """
        Ensure correct types for configuration parameters.

        Parameters
        ----------
        cfg : dict
            Configuration dictionary to validate.

        Raises
        ------
        ConfigurationError
            If any parameter has incorrect type.
        """
        int_params = ["max_round", "n_workers"]
        float_params = [
            "rate_min",
            "rate_max",
            "rate_step",
            "tax_min",
            "tax_max",
            "tax_step",
        ]
        str_params = ["strategy", "on_domain_error"]

        # Check integers (bool is an int subclass but never a valid count)
        for key in int_params:
            if key not in cfg:
                continue
            val = cfg[key]
            if isinstance(val, bool) or not isinstance(val, int):
                raise ConfigurationError(
                    f"Config parameter '{key}' must be int, got {type(val).__name__}"
                )

        # Check floats (accept int or float, must be finite)
        for key in float_params:
            if key not in cfg:
                continue
            val = cfg[key]
            if isinstance(val, bool) or not isinstance(val, (int, float)):
                raise ConfigurationError(
                    f"Config parameter '{key}' must be float, got {type(val).__name__}"
                )
            if not math.isfinite(val):
                raise ConfigurationError(
                    f"Config parameter '{key}' must be finite, got {val}"
                )

        for key in str_params:
            if key not in cfg:
                continue
            val = cfg[key]
            if not isinstance(val, str):
                raise ConfigurationError(
                    f"Config parameter '{key}' must be str, got {type(val).__name__}"
                )

    @staticmethod
    def _validate_ranges(cfg: dict[str, Any]) -> None:
        """
        Ensure parameters are in valid ranges.

        Parameters
        ----------
        cfg : dict
            Configuration dictionary to validate.

        Raises
        ------
        ConfigurationError
            If any parameter is out of valid range.
        """
        # (min_val, max_val, strict_min); None means unbounded
        constraints = {
            "max_round": (1, None, False),
            "n_workers": (1, None, False),
            "rate_step": (0.0, None, True),
            "tax_step": (0.0, None, True),
            "tax_min": (0.0, 1.0, False),
            "tax_max": (0.0, 1.0, False),
        }

        for key, (min_val, max_val, strict) in constraints.items():
            if key not in cfg:
                continue

            val = cfg[key]

            if min_val is not None:
                if strict and val <= min_val:
                    raise ConfigurationError(
                        f"Config parameter '{key}' must be > {min_val}, got {val}"
                    )
                if not strict and val < min_val:
                    raise ConfigurationError(
                        f"Config parameter '{key}' must be >= {min_val}, got {val}"
                    )

            if max_val is not None and val > max_val:
                raise ConfigurationError(
                    f"Config parameter '{key}' must be <= {max_val}, got {val}"
                )

        if (
            "strategy" in cfg
            and cfg["strategy"] not in ConfigValidator.VALID_STRATEGIES
        ):
            raise ConfigurationError(
                f"Invalid strategy '{cfg['strategy']}'. "
                f"Must be one of {sorted(ConfigValidator.VALID_STRATEGIES)}"
            )

        if (
            "on_domain_error" in cfg
            and cfg["on_domain_error"] not in ConfigValidator.VALID_DOMAIN_POLICIES
        ):
            raise ConfigurationError(
                f"Invalid on_domain_error '{cfg['on_domain_error']}'. "
                f"Must be one of {sorted(ConfigValidator.VALID_DOMAIN_POLICIES)}"
            )

    @staticmethod
    def _validate_relationships(cfg: dict[str, Any]) -> None:
        """
        Validate cross-parameter constraints.

        Parameters
        ----------
        cfg : dict
            Configuration dictionary to validate.

        Raises
        ------
        ConfigurationError
            If a grid has its lower bound above its upper bound, or has too
            many points to evaluate.
        """
        for axis in ("rate", "tax"):
            lo = cfg.get(f"{axis}_min")
            hi = cfg.get(f"{axis}_max")
            if lo is not None and hi is not None and lo > hi:
                raise ConfigurationError(
                    f"Config parameter '{axis}_min' ({lo}) must be <= "
                    f"'{axis}_max' ({hi})"
                )

        # Warn if workers are requested for the single-pass strategy
        if cfg.get("strategy", "vectorized") == "vectorized" and cfg.get(
            "n_workers", 1
        ) > 1:
            warnings.warn(
                f"n_workers ({cfg['n_workers']}) is ignored by the vectorized "
                "strategy. Use strategy='exhaustive' to evaluate in parallel.",
                UserWarning,
                stacklevel=3,
            )

        # Refuse grids that cannot be evaluated, warn on very large ones
        sizes = []
        for axis in ("rate", "tax"):
            keys = (f"{axis}_min", f"{axis}_max", f"{axis}_step")
            if all(k in cfg for k in keys):
                lo, hi, step = (cfg[k] for k in keys)
                sizes.append(axis_size(lo, hi, step))
        if len(sizes) != 2:
            return
        n_points = sizes[0] * sizes[1]
        if n_points > MAX_GRID_POINTS:
            raise ConfigurationError(
                f"Instrument grid has {n_points:,} points per round, "
                f"the limit is {MAX_GRID_POINTS:,}. Increase rate_step or tax_step"
            )
        if n_points > LARGE_GRID_WARNING:
            warnings.warn(
                f"Instrument grid has {n_points:,} points per round. "
                "Each round evaluates every point.",
                UserWarning,
                stacklevel=3,
            )

    @staticmethod
    def _validate_logging(log_config: Any) -> None:
        """
        Validate logging configuration.

        Parameters
        ----------
        log_config : dict
            Logging configuration dictionary with keys:
            - default_level: str (e.g., 'INFO', 'DEBUG')
            - components: dict[str, str] (per-module overrides)

        Raises
        ------
        ConfigurationError
            If logging configuration is invalid.
        """
        if not isinstance(log_config, dict):
            raise ConfigurationError(
                f"Logging config must be dict, got {type(log_config).__name__}"
            )

        # Check default_level
        if "default_level" in log_config:
            level = log_config["default_level"]
            if not isinstance(level, str):
                raise ConfigurationError(
                    f"Logging default_level must be str, got {type(level).__name__}"
                )

            if level.upper() not in ConfigValidator.VALID_LOG_LEVELS:
                raise ConfigurationError(
                    f"Invalid log level '{level}'. "
                    f"Must be one of {ConfigValidator.VALID_LOG_LEVELS}"
                )

        # Check components dictionary
        if "components" in log_config:
            components = log_config["components"]
            if not isinstance(components, dict):
                raise ConfigurationError(
                    f"Logging components must be dict, "
                    f"got {type(components).__name__}"
                )

            for name, level in components.items():
                if not isinstance(name, str):
                    raise ConfigurationError(
                        f"Component name must be str, got {type(name).__name__}"
                    )

                if not isinstance(level, str):
                    raise ConfigurationError(
                        f"Log level for component '{name}' must be str, "
                        f"got {type(level).__name__}"
                    )

                if level.upper() not in ConfigValidator.VALID_LOG_LEVELS:
                    raise ConfigurationError(
                        f"Invalid log level '{level}' for component '{name}'. "
                        f"Must be one of {ConfigValidator.VALID_LOG_LEVELS}"
                    )
