#!/usr/bin/env python3
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
# Review required for correctness, security, and licensing.

"""
Latency probe backends for rttgraph.

A prober issues exactly one echo request against a host and reports the
round-trip time in milliseconds, or None when no reply arrived in time.

Two backends are provided:
  - SystemPingProber: shells out to the platform ``ping`` utility and parses
    the ``time=<value>`` marker from its output.
  - ScapyProber: sends a raw ICMP echo with scapy (requires CAP_NET_RAW/root).

Backends raise ProbeError for hard failures (spawn error, missing privileges,
unsupported platform). The sampling loop never sees those: it goes through
probe_outcome(), which turns every failure into a loss.
"""

import json
import logging
import math
import subprocess
import sys
from typing import Optional

logger = logging.getLogger(__name__)

RTT_MARKERS = ("time=", "time<")
TEARDOWN_OVERHEAD_SECONDS = 1.0
BSD_PLATFORMS = ("darwin", "freebsd", "openbsd", "netbsd")


class ProbeError(RuntimeError):
    """Raised when a probe backend fails for a reason other than no reply."""

    def __init__(self, message, returncode=None, stderr=None):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class UnsupportedPlatformError(ProbeError):
    """Raised when the system ping flags for this platform are unknown."""


def timeout_seconds(timeout_ms: int) -> int:
    """Round a millisecond timeout up to whole seconds, never below 1."""
    return max(1, math.ceil(timeout_ms / 1000.0))


def parse_ping_output(text: str) -> Optional[float]:
    """
    Extract the round-trip time from ping's textual output.

    The first line carrying a parsable ``time=`` (or Windows ``time<``) marker wins.
    The value runs up to the next whitespace; a glued ``ms`` unit is dropped.

    Args:
        text: Captured stdout of a single ping invocation

    Returns:
        RTT in milliseconds, or None if no parsable marker was found
    """
    if not text:
        return None
    for line in text.splitlines():
        for marker in RTT_MARKERS:
            idx = line.find(marker)
            if idx < 0:
                continue
            rest = line[idx + len(marker) :]
            token = rest.split(None, 1)[0] if rest.strip() else ""
            if token.endswith("ms"):
                token = token[:-2]
            try:
                value = float(token)
            except ValueError:
                continue
            if value < 0 or math.isnan(value):
                continue
            return value
    return None


class Prober:
    """Interface for a single-shot latency probe."""

    name = "abstract"

    def probe(self, host: str, timeout_ms: int) -> Optional[float]:
        """Return the RTT in milliseconds, or None if the host did not answer."""
        raise NotImplementedError


class SystemPingProber(Prober):
    """Probe by running the system ``ping`` utility once."""

    name = "system"

    def __init__(self, ping_command: str = "ping", platform: Optional[str] = None) -> None:
        self.ping_command = ping_command
        self.platform = platform if platform is not None else sys.platform

    def build_command(self, host: str, timeout_ms: int):
        """Build the argv for one echo request on the configured platform."""
        secs = str(timeout_seconds(timeout_ms))
        if self.platform.startswith("linux"):
            return [self.ping_command, "-n", "-c", "1", "-w", secs, host]
        if self.platform.startswith(BSD_PLATFORMS):
            return [self.ping_command, "-n", "-c", "1", "-t", secs, host]
        if self.platform.startswith("win"):
            return [self.ping_command, "-n", "1", "-w", str(max(1, int(timeout_ms))), host]
        raise UnsupportedPlatformError(f"No ping flags known for platform '{self.platform}'.")

    def probe(self, host: str, timeout_ms: int) -> Optional[float]:
        """
        Ping a host once using the system utility.

        Args:
            host: The hostname or IP address to ping
            timeout_ms: Timeout in milliseconds, rounded up to whole seconds

        Returns:
            RTT in milliseconds, or None on timeout / non-zero exit / no marker

        Raises:
            ProbeError: If the ping executable cannot be spawned
            UnsupportedPlatformError: If the platform has no known ping flags
        """
        if timeout_ms <= 0:
            raise ValueError("timeout_ms must be a positive integer in milliseconds.")

        cmd_args = self.build_command(host, timeout_ms)
        try:
            result = subprocess.run(
                cmd_args,
                capture_output=True,
                text=True,
                timeout=timeout_seconds(timeout_ms) + TEARDOWN_OVERHEAD_SECONDS,
                check=False,
            )
        except subprocess.TimeoutExpired:
            return None
        except OSError as exc:
            raise ProbeError(f"failed to execute '{self.ping_command}': {exc}") from exc

        if result.returncode != 0:
            logger.debug(
                "ping exited with %d for %s: %s",
                result.returncode,
                host,
                (result.stderr or "").strip(),
            )
            return None

        return parse_ping_output(result.stdout)


class ScapyProber(Prober):
    """Probe with a raw ICMP echo request built by scapy."""

    name = "scapy"

    def probe(self, host: str, timeout_ms: int) -> Optional[float]:
        """
        Send one ICMP echo request and time the reply.

        Raises:
            ProbeError: If the raw socket cannot be opened or the host is invalid
        """
        if timeout_ms <= 0:
            raise ValueError("timeout_ms must be a positive integer in milliseconds.")

        from scapy.all import ICMP, IP, sr  # pylint: disable=import-outside-toplevel

        try:
            answered, _unanswered = sr(IP(dst=host) / ICMP(), timeout=timeout_ms / 1000.0, verbose=0)
        except OSError as exc:
            raise ProbeError(f"raw ICMP probe failed for {host}: {exc}") from exc

        if not answered:
            return None
        sent, received = answered[0]
        return max(0.0, (float(received.time) - float(sent.sent_time)) * 1000.0)


BACKENDS = {
    SystemPingProber.name: SystemPingProber,
    ScapyProber.name: ScapyProber,
}


def create_prober(backend: str = "system", ping_command: str = "ping") -> Prober:
    """Instantiate a probe backend by name."""
    if backend == SystemPingProber.name:
        return SystemPingProber(ping_command=ping_command)
    if backend == ScapyProber.name:
        return ScapyProber()
    raise ValueError(f"Unknown probe backend '{backend}'. Choose from: {', '.join(sorted(BACKENDS))}.")


def probe_outcome(prober: Prober, host: str, timeout_ms: int) -> Optional[float]:
    """Run one probe, mapping every backend failure to a loss (None)."""
    try:
        return prober.probe(host, timeout_ms)
    except Exception as e:  # pylint: disable=broad-exception-caught
        logger.debug("Probe of %s via %s failed: %r", host, prober.name, e)
        return None


def main():
    """
    Command-line interface for a single probe.

    Usage:
        python3 -m rttgraph.prober <host> [timeout_ms]

    Outputs JSON with the result:
        {"host": "example.com", "rtt_ms": 12.345, "success": true}
        {"host": "example.com", "rtt_ms": null, "success": false}
    """
    if len(sys.argv) < 2:
        print("Usage: python3 -m rttgraph.prober <host> [timeout_ms]", file=sys.stderr)
        sys.exit(1)

    host = sys.argv[1]
    timeout_ms = 1000
    if len(sys.argv) >= 3:
        try:
            timeout_ms = int(sys.argv[2])
        except ValueError:
            print("Error: timeout_ms must be an integer", file=sys.stderr)
            sys.exit(1)
        if timeout_ms <= 0:
            print("Error: timeout_ms must be a positive integer", file=sys.stderr)
            sys.exit(1)

    try:
        rtt_ms = SystemPingProber().probe(host, timeout_ms)
    except ProbeError as e:
        print(json.dumps({"host": host, "rtt_ms": None, "success": False, "error": str(e)}))
        sys.exit(2)

    print(json.dumps({"host": host, "rtt_ms": rtt_ms, "success": rtt_ms is not None}))
    sys.exit(0 if rtt_ms is not None else 1)


if __name__ == "__main__":
    main()
