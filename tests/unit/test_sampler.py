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
# Review for correctness and security.

"""
Unit tests for rttgraph.sampler module.

The prober is replaced with scripted fakes so no network traffic is sent.
"""

import os
import sys
import threading
import time
import unittest
from unittest.mock import MagicMock

# Add parent directory to path to import rttgraph
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../..")))

from rttgraph.channel import SampleChannel  # noqa: E402  # pylint: disable=wrong-import-position
from rttgraph.prober import ProbeError, Prober  # noqa: E402  # pylint: disable=wrong-import-position
from rttgraph.sampler import Sample, Sampler, start_sampler_thread  # noqa: E402  # pylint: disable=wrong-import-position


class ScriptedProber(Prober):
    """Returns (or raises) scripted outcomes, then repeats the last one."""

    name = "scripted"

    def __init__(self, outcomes, delay=0.0):
        self.outcomes = list(outcomes)
        self.delay = delay
        self.calls = 0
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    def probe(self, host, timeout_ms):
        with self._lock:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                time.sleep(self.delay)
            outcome = self.outcomes[min(self.calls, len(self.outcomes) - 1)]
            self.calls += 1
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        finally:
            with self._lock:
                self.in_flight -= 1


class ClosingChannel(SampleChannel):
    """Channel whose receiver goes away after a fixed number of sends."""

    def __init__(self, limit):
        super().__init__(capacity=limit + 1)
        self.limit = limit
        self.sent = []

    def send(self, item):
        if len(self.sent) >= self.limit:
            self.close()
        super().send(item)
        self.sent.append(item)


class TestSampleOnce(unittest.TestCase):
    """Tests for a single sampling cycle"""

    def test_sequences_are_consecutive_regardless_of_outcome(self):
        prober = ScriptedProber([12.0, None, ProbeError("boom"), OSError("spawn"), 3.0])
        sampler = Sampler(prober, "192.0.2.1")

        samples = [sampler.sample_once() for _ in range(5)]

        self.assertEqual([s.sequence for s in samples], [1, 2, 3, 4, 5])
        self.assertEqual([s.rtt for s in samples], [12.0, None, None, None, 3.0])

    def test_sample_is_timestamped(self):
        sampler = Sampler(ScriptedProber([1.0]), "192.0.2.1")
        before = time.time()
        sample = sampler.sample_once()
        self.assertGreaterEqual(sample.timestamp, before)
        self.assertIsInstance(sample, Sample)


class TestSamplerRun(unittest.TestCase):
    """Tests for the loop, its pacing and its termination"""

    def test_run_stops_when_channel_closes(self):
        prober = ScriptedProber([5.0])
        channel = ClosingChannel(limit=3)
        sampler = Sampler(prober, "192.0.2.1", interval_ms=1)

        sampler.run(channel)

        self.assertEqual([s.sequence for s in channel.sent], [1, 2, 3])
        self.assertEqual(sampler.state, "stopped")
        self.assertTrue(channel.sender_finished)

    def test_run_self_paces_to_interval(self):
        prober = ScriptedProber([5.0])
        channel = ClosingChannel(limit=3)
        sampler = Sampler(prober, "192.0.2.1", interval_ms=100)

        started = time.monotonic()
        sampler.run(channel)
        elapsed = time.monotonic() - started

        # Three waits after the three accepted sends; the fourth send fails.
        self.assertGreaterEqual(elapsed, 0.28)

    def test_slow_probe_is_not_followed_by_extra_wait(self):
        clock_values = iter([0.0, 2.0, 2.0, 4.0, 4.0, 6.0])
        prober = ScriptedProber([None])
        channel = ClosingChannel(limit=2)
        channel.wait_closed = MagicMock(return_value=False)
        sampler = Sampler(prober, "192.0.2.1", interval_ms=1000, clock=lambda: next(clock_values))

        sampler.run(channel)

        channel.wait_closed.assert_not_called()

    def test_one_probe_in_flight(self):
        prober = ScriptedProber([1.0], delay=0.01)
        channel = ClosingChannel(limit=4)
        Sampler(prober, "192.0.2.1", interval_ms=1).run(channel)
        self.assertEqual(prober.max_in_flight, 1)

    def test_backend_exception_is_a_loss_and_loop_continues(self):
        prober = ScriptedProber([7.0, RuntimeError("backend bug"), 9.0])
        channel = ClosingChannel(limit=3)
        sampler = Sampler(prober, "192.0.2.1", interval_ms=1)

        sampler.run(channel)

        self.assertEqual([s.sequence for s in channel.sent], [1, 2, 3])
        self.assertEqual([s.rtt for s in channel.sent], [7.0, None, 9.0])
        self.assertEqual(prober.calls, 4)

    def test_unexpected_error_marks_sender_finished(self):
        class BrokenChannel(SampleChannel):
            def send(self, item):
                raise RuntimeError("bug")

        channel = BrokenChannel()
        sampler = Sampler(ScriptedProber([1.0]), "192.0.2.1", interval_ms=1)

        with self.assertLogs("rttgraph.sampler", level="ERROR"):
            sampler.run(channel)

        self.assertTrue(channel.sender_finished)
        self.assertEqual(sampler.state, "stopped")

    def test_start_sampler_thread_is_daemon(self):
        prober = ScriptedProber([2.0])
        channel = SampleChannel(capacity=4)
        thread = start_sampler_thread(Sampler(prober, "192.0.2.1", interval_ms=10), channel)
        try:
            self.assertTrue(thread.daemon)
            self.assertEqual(thread.name, "rttgraph-sampler")
            deadline = time.monotonic() + 2.0
            while channel.pending() == 0 and time.monotonic() < deadline:
                time.sleep(0.01)
            self.assertGreater(channel.pending(), 0)
        finally:
            channel.close()
            thread.join(timeout=2.0)
        self.assertFalse(thread.is_alive())


if __name__ == "__main__":
    unittest.main()
