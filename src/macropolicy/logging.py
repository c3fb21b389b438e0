"""
Custom logging configuration for MacroPolicy.

Extends Python's standard logging with a custom DEEP_DEBUG level (5)
for very verbose debugging output (per-equation values of a round).
Provides PolicyLogger class with per-component log level configuration
support.

Log Levels
----------
- CRITICAL (50): Critical errors
- ERROR (40): Errors
- WARNING (30): Warnings (e.g. rejected non-finite candidates)
- INFO (20): Informational messages (default, one line per round)
- DEBUG (10): Debug messages (search details)
- DEEP_DEBUG (5): Very verbose debug messages (equation values)

Examples
--------
Use logger in a module:

>>> from macropolicy import logging
>>> logger = logging.getLogger("macropolicy.optimizer")
>>> logger.info("Round finished")
>>> logger.deep("Very verbose output")

Configure per-component log levels:

>>> import macropolicy as mp
>>> log_config = {
...     "default_level": "INFO",
...     "components": {"transition": "DEEP_DEBUG", "optimizer": "DEBUG"},
... }
>>> search = mp.PolicySearch.init(logging=log_config)

See Also
--------
macropolicy.config.ConfigValidator : Validates the logging configuration
"""

import logging
from typing import Any

(CRITICAL, ERROR, WARNING, INFO, DEBUG) = (
    logging.CRITICAL,
    logging.ERROR,
    logging.WARNING,
    logging.INFO,
    logging.DEBUG,
)
DEEP_DEBUG = 5
logging.addLevelName(DEEP_DEBUG, "DEEP")

LEVELS = {
    "DEEP_DEBUG": DEEP_DEBUG,
    "DEBUG": DEBUG,
    "INFO": INFO,
    "WARNING": WARNING,
    "ERROR": ERROR,
    "CRITICAL": CRITICAL,
}


class PolicyLogger(logging.Logger):
    """
    Custom logger with DEEP_DEBUG level support.

    Extends Python's Logger to add the `deep()` method for very verbose
    debugging output (level 5).

    Examples
    --------
    >>> logger = PolicyLogger("test")
    >>> logger.setLevel(5)  # DEEP_DEBUG
    >>> logger.deep("Very verbose message")
    """

    def deep(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """
        Log message at DEEP_DEBUG level (5).

        Parameters
        ----------
        msg : str
            Message format string.
        *args : Any
            Arguments for message formatting.
        **kwargs : Any
            Additional logging kwargs.
        """
        if self.isEnabledFor(DEEP_DEBUG):
            self._log(DEEP_DEBUG, msg, args, **kwargs)


# Make the logging module hand out our subclass from now on
logging.setLoggerClass(PolicyLogger)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)


def getLogger(name: str | None = None) -> PolicyLogger:
    """
    Get a PolicyLogger instance.

    Convenience wrapper around logging.getLogger() that returns
    a PolicyLogger instance with DEEP_DEBUG support.

    Parameters
    ----------
    name : str, optional
        Logger name. If None, returns root logger.

    Returns
    -------
    PolicyLogger
        Logger instance with deep() method.
    """
    return logging.getLogger(name)  # type: ignore[return-value]


def configure(log_config: dict[str, Any]) -> None:
    """
    Apply a validated logging configuration to the ``macropolicy`` loggers.

    Parameters
    ----------
    log_config : dict
        Logging configuration with keys:
        - default_level: str (e.g., 'INFO', 'DEBUG')
        - components: dict[str, str] (per-module overrides, e.g.
          ``{"optimizer": "DEBUG"}`` targets ``macropolicy.optimizer``)
    """
    default_level = log_config.get("default_level", "INFO")
    logging.getLogger("macropolicy").setLevel(LEVELS[default_level.upper()])

    for component, level in log_config.get("components", {}).items():
        logger_name = f"macropolicy.{component}"
        logging.getLogger(logger_name).setLevel(LEVELS[level.upper()])
