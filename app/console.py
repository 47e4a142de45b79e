# SPDX-License-Identifier: GPL-3.0-or-later
"""
goal: command line launcher for DMASentry: loads config and signatures, runs one scan over every evidence
source, prints the report (or JSON) and relays it to the webhook when one is configured. the exit status
mirrors the verdict so the tool can be scripted: 0 GREEN, 1 YELLOW, 3 RED, 2 configuration error.
"""

from __future__ import annotations  # lets us use string annotations before classes are defined

import argparse  # for parsing command line arguments
import json  # for --json output
import logging  # for configuring log output
import sys  # for writing to stdout/stderr
from collections.abc import Sequence  # type hint for argv

from colorama import init as _colorama_init  # enables ANSI color codes on Windows terminals
from dotenv import load_dotenv  # reads DMASENTRY_* settings from a .env file

from algorithm.signatures import SignatureConfigError, load_signatures
from algorithm.verdict_engine import Verdict, summary_to_dict
from app.config import load_config
from app.report import post_summary, render_report
from app.scanner import run_scan

log = logging.getLogger("dmasentry.console")

EXIT_CODES = {Verdict.GREEN: 0, Verdict.YELLOW: 1, Verdict.RED: 3}
EXIT_CONFIG_ERROR = 2


def print_banner(color: bool = True) -> None:
    # small boxed banner; plain text when color is off so redirected output stays clean
    if color:
        cyan, mag, dim, bold, reset = "\x1b[36m", "\x1b[35m", "\x1b[2m", "\x1b[1m", "\x1b[0m"
    else:
        cyan = mag = dim = bold = reset = ""
    print(
        f"""
{dim}┌────────────────────────────────────────────────────────────┐{reset}
{dim}│{reset}{cyan}{bold}                  D  M  A  S  e  n  t  r  y{reset}{dim}                 │{reset}
{dim}├────────────────────────────────────────────────────────────┤{reset}
{dim}│{reset}{mag}   PCIe / Thunderbolt DMA hardware evidence scanner          {reset}{dim}│{reset}
{dim}└────────────────────────────────────────────────────────────┘{reset}
"""
    )


def _setup_logging(level_name: str, verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, level_name, logging.WARNING)
    logging.basicConfig(level=level, format="[%(levelname)s] %(name)s: %(message)s")
    # keep requests/urllib3 connection chatter out of the report
    logging.getLogger("urllib3").setLevel(max(level, logging.WARNING))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dmasentry", description="Scan this host for DMA attack hardware evidence"
    )
    parser.add_argument("--json", action="store_true", help="print the summary as JSON")
    parser.add_argument(
        "--no-webhook", action="store_true", help="do not relay the summary to the webhook"
    )
    parser.add_argument("--no-color", action="store_true", help="plain text output")
    parser.add_argument(
        "--signatures", metavar="PATH", help="JSON file overriding vendor ids / keywords / whitelist"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    load_dotenv()  # .env first so DMASENTRY_* values reach load_config
    cfg = load_config()
    _setup_logging(cfg.log_level, args.verbose)

    color = not (args.no_color or args.json) and sys.stdout.isatty()
    if color:
        _colorama_init()

    sig_path = args.signatures or str(cfg.signatures_path)
    try:
        signatures = load_signatures(sig_path)
    except (OSError, SignatureConfigError) as exc:
        print(f"dmasentry: bad signature file {sig_path}: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    if not args.json:
        print_banner(color)
    summary = run_scan(cfg, signatures)

    if args.json:
        print(json.dumps(summary_to_dict(summary), indent=2))
    else:
        print(render_report(summary, color=color))

    if cfg.webhook_enabled and not args.no_webhook:
        sent = post_summary(cfg.webhook_url, summary, timeout=cfg.webhook_timeout)
        if not args.json:
            print("\nSummary sent to webhook." if sent else "\nWebhook delivery failed.")

    return EXIT_CODES[summary.verdict]


if __name__ == "__main__":
    sys.exit(main())
