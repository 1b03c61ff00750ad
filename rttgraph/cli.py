# Copyright 2025 icecake0141
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# This file was created or modified with the assistance of an AI (Large Language Model).
# Review for correctness and security.

"""
Command-line interface for rttgraph.

This module parses options, wires the sampler thread to the dashboard through
the bounded channel, and races the shutdown triggers (quit key, SIGINT/SIGTERM,
sampler exit) against each other.
"""

import argparse
import logging
import os
import signal
import sys
import termios
import threading
from typing import Any, Dict, List, Optional

from rttgraph import __version__
from rttgraph.channel import DEFAULT_CAPACITY, SampleChannel
from rttgraph.config import load_config
from rttgraph.dashboard import Dashboard
from rttgraph.prober import BACKENDS, create_prober
from rttgraph.sampler import Sampler, start_sampler_thread
from rttgraph.stats import format_loss
from rttgraph.ui_render import TerminalRenderer

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_TERMINAL_ERROR = 1

# Hardcoded defaults for config-overridable fields.
# Applied after config merging for any field still set to None.
_HARDCODED_DEFAULTS: Dict[str, Any] = {
    "interval_ms": 1000,
    "timeout_ms": 1000,
    "history": 120,
    "backend": "system",
    "ping_command": "ping",
    "color": True,
    "log_level": "WARNING",
}


def _configure_logging(log_level: str, log_file: Optional[str]) -> None:
    """Configure logging handlers; stdout belongs to the dashboard, so logs go to stderr or a file."""
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers = [logging.FileHandler(os.path.expanduser(log_file), encoding="utf-8")]
    logging.basicConfig(
        level=getattr(logging, log_level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=handlers,
        force=True,
    )


def _apply_config_to_args(args: argparse.Namespace, config: Dict[str, Any]) -> None:
    """
    Overlay config file values onto a parsed argument namespace.

    Only fields that are still ``None`` (i.e. not explicitly set on the CLI)
    are updated.
    """
    for key, value in config.items():
        if hasattr(args, key) and getattr(args, key) is None:
            setattr(args, key, value)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rttgraph",
        description="rttgraph - live latency graph for a single host in your terminal",
        epilog="Keys: q, Esc or Ctrl-C to quit.",
    )
    parser.add_argument("host", nargs="?", default=None, help="Host to probe (IP address or hostname)")
    parser.add_argument(
        "-i",
        "--interval-ms",
        type=int,
        default=None,
        help="Milliseconds between probes (default: 1000)",
    )
    parser.add_argument(
        "-t",
        "--timeout-ms",
        type=int,
        default=None,
        help="Per-probe timeout in milliseconds, rounded up to whole seconds for ping (default: 1000)",
    )
    parser.add_argument(
        "-H",
        "--history",
        type=int,
        default=None,
        help="Number of samples kept for the chart and the average (default: 120)",
    )
    parser.add_argument(
        "-b",
        "--backend",
        type=str,
        default=None,
        choices=sorted(BACKENDS),
        help="Probe backend: system ping utility or raw ICMP via scapy (default: system)",
    )
    parser.add_argument(
        "--ping-command",
        type=str,
        default=None,
        help="Executable used by the system backend (default: ping)",
    )
    parser.add_argument(
        "--no-color",
        dest="color",
        action="store_false",
        default=None,
        help="Disable ANSI colors",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING)",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Write logs to this file instead of stderr",
    )
    parser.add_argument(
        "--no-config",
        action="store_true",
        default=False,
        help="Skip loading ~/.rttgraph.conf config file",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def handle_options(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse and validate command-line arguments."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.no_config:
        try:
            config = load_config()
            _apply_config_to_args(args, config)
        except (ValueError, ImportError) as exc:
            parser.error(str(exc))

    for field, default in _HARDCODED_DEFAULTS.items():
        if getattr(args, field, None) is None:
            setattr(args, field, default)

    if not args.host:
        parser.error("a host is required (as an argument or 'host' in the config file).")
    if args.interval_ms < 1:
        parser.error("--interval-ms must be a positive integer.")
    if args.timeout_ms < 1:
        parser.error("--timeout-ms must be a positive integer.")
    if args.history < 1:
        parser.error("--history must be a positive integer.")
    if args.backend not in BACKENDS:
        parser.error(f"unknown backend '{args.backend}'.")
    return args


def _install_signal_handlers(stop_event: threading.Event) -> Dict[int, Any]:
    """Route SIGINT/SIGTERM to stop_event; returns the previous handlers."""

    def _handle_signal(signum, _frame):
        logger.info("Received signal %d; shutting down", signum)
        stop_event.set()

    previous = {}
    for signum in (signal.SIGINT, signal.SIGTERM):
        previous[signum] = signal.signal(signum, _handle_signal)
    return previous


def _restore_signal_handlers(previous: Dict[int, Any]) -> None:
    for signum, handler in previous.items():
        signal.signal(signum, handler)


def run(args: argparse.Namespace) -> int:
    """Run the dashboard with parsed arguments and return the process exit code."""
    _configure_logging(getattr(args, "log_level", "WARNING"), getattr(args, "log_file", None))
    logger.info(
        "rttgraph - probing %s every %dms (timeout=%dms, history=%d, backend=%s)",
        args.host,
        args.interval_ms,
        args.timeout_ms,
        args.history,
        args.backend,
    )

    channel: SampleChannel = SampleChannel(DEFAULT_CAPACITY)
    prober = create_prober(args.backend, ping_command=args.ping_command)
    sampler = Sampler(prober, args.host, interval_ms=args.interval_ms, timeout_ms=args.timeout_ms)
    stop_event = threading.Event()
    dashboard = Dashboard(
        args.host,
        args.history,
        channel,
        TerminalRenderer(),
        stop_event=stop_event,
        use_color=bool(args.color) and sys.stdout.isatty(),
    )

    previous_handlers = _install_signal_handlers(stop_event)
    try:
        start_sampler_thread(sampler, channel)
        reason = dashboard.run()
    except (OSError, termios.error) as exc:
        logger.error("Terminal error: %s", exc)
        print(f"rttgraph: terminal error: {exc}", file=sys.stderr)
        return EXIT_TERMINAL_ERROR
    finally:
        _restore_signal_handlers(previous_handlers)

    window = dashboard.window
    print(f"{args.host}: {window.total_count} probes, {window.lost_count} lost ({format_loss(window)} loss) [{reason}]")
    return EXIT_OK


def main() -> None:
    """Main entrypoint for the CLI - parses arguments and runs the application."""
    args = handle_options()
    sys.exit(run(args))
