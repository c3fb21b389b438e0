"""Command-line runner for MacroPolicy.

Searches every round and prints one tab-separated row per round as soon
as the round's winner is known.

Usage:
    # Reference run: 50 rounds, default grid
    macropolicy

    # Shorter run written to a file
    macropolicy --rounds 10 --output rounds.tsv

    # Per-candidate evaluation on 4 processes, dropping non-finite candidates
    macropolicy --strategy exhaustive --workers 4 --on-domain-error warn

Exit status: 0 on success, 1 if the run aborted, 2 on invalid configuration
or an unwritable output file.
"""

from __future__ import annotations

import argparse
import sys
from typing import Any, TextIO

from macropolicy import logging
from macropolicy.errors import ConfigurationError, MacroPolicyError
from macropolicy.report import format_record, header
from macropolicy.search import PolicySearch

log = logging.getLogger(__name__)


def _cli(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="macropolicy",
        description="Search optimal interest and tax rates round by round.",
    )
    p.add_argument("--rounds", type=int, default=None, help="Rounds to search")
    p.add_argument("--config", default=None, help="YAML config file")
    p.add_argument(
        "--strategy",
        choices=["vectorized", "exhaustive"],
        default=None,
        help="Candidate evaluation strategy",
    )
    p.add_argument(
        "--workers", type=int, default=None, help="Processes (exhaustive only)"
    )
    p.add_argument(
        "--on-domain-error",
        choices=["raise", "warn"],
        default=None,
        help="Abort or drop candidates with non-finite values",
    )
    p.add_argument(
        "--log-level",
        default=None,
        help="macropolicy log level (DEEP_DEBUG, DEBUG, INFO, WARNING, ...)",
    )
    p.add_argument(
        "--output", default=None, help="Write the report here instead of stdout"
    )
    return p.parse_args(argv)


def _overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if args.rounds is not None:
        overrides["max_round"] = args.rounds
    if args.strategy is not None:
        overrides["strategy"] = args.strategy
    if args.workers is not None:
        overrides["n_workers"] = args.workers
    if args.on_domain_error is not None:
        overrides["on_domain_error"] = args.on_domain_error
    if args.log_level is not None:
        overrides["logging"] = {"default_level": args.log_level}
    return overrides


def main(argv: list[str] | None = None) -> int:
    args = _cli(argv)

    try:
        search = PolicySearch.init(config=args.config, **_overrides(args))
    except ConfigurationError as exc:
        log.error("Invalid configuration: %s", exc)
        return 2

    out: TextIO = sys.stdout
    if args.output:
        try:
            out = open(args.output, "w", encoding="utf-8")
        except OSError as exc:
            log.error("Cannot open output file %s: %s", args.output, exc)
            return 2

    try:
        out.write(header() + "\n")
        while not search.done:
            outcome = search.step()
            out.write(format_record(outcome.record) + "\n")
            out.flush()
    except MacroPolicyError as exc:
        log.error("Run aborted in round %d: %s", search.t + 1, exc)
        return 1
    finally:
        if out is not sys.stdout:
            out.close()

    log.info("Search finished after %d rounds.", search.t)
    return 0


if __name__ == "__main__":
    sys.exit(main())
