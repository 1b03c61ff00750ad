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
Sampling loop for rttgraph.

The Sampler probes one host on a fixed period and forwards every outcome,
losses included, to the dashboard through a bounded SampleChannel. It paces
itself against a monotonic clock so the effective period is
max(interval, probe duration). The loop stops when the receiver closes the
channel; there is no separate stop flag at this layer.
"""

import logging
import threading
import time
from typing import Callable, NamedTuple, Optional

from rttgraph.channel import ChannelClosed, SampleChannel
from rttgraph.prober import Prober, probe_outcome

logger = logging.getLogger(__name__)


class Sample(NamedTuple):
    """One probe outcome. rtt is None for a timeout or loss."""

    sequence: int
    rtt: Optional[float]
    timestamp: float = 0.0


class Sampler:
    """
    Fixed-cadence prober feeding a SampleChannel.

    Exactly one probe is in flight at a time. Sequence numbers start at 1 and
    advance once per cycle regardless of the probe outcome.
    """

    def __init__(
        self,
        prober: Prober,
        host: str,
        interval_ms: int = 1000,
        timeout_ms: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.prober = prober
        self.host = host
        self.interval = interval_ms / 1000.0
        self.timeout_ms = timeout_ms
        self.clock = clock
        self.state = "idle"
        self._sequence = 0

    def next_sequence(self) -> int:
        self._sequence += 1
        return self._sequence

    def sample_once(self) -> Sample:
        """Run one probe and wrap its outcome in a Sample."""
        started_at = time.time()
        self.state = "probing"
        rtt = probe_outcome(self.prober, self.host, self.timeout_ms)
        sample = Sample(sequence=self.next_sequence(), rtt=rtt, timestamp=started_at)
        if rtt is None:
            logger.debug("No reply from %s: seq=%d", self.host, sample.sequence)
        else:
            logger.debug("Reply from %s: seq=%d rtt=%.3fms", self.host, sample.sequence, rtt)
        return sample

    def run(self, channel: "SampleChannel[Sample]") -> None:
        """
        Probe until the channel's receiver goes away.

        Args:
            channel: Bounded channel shared with the dashboard; send() blocks
                     while it is full
        """
        try:
            while True:
                cycle_start = self.clock()
                sample = self.sample_once()
                try:
                    channel.send(sample)
                except ChannelClosed:
                    logger.debug("Sample channel closed after seq=%d; sampler stopping", sample.sequence)
                    break

                self.state = "waiting"
                remaining = self.interval - (self.clock() - cycle_start)
                if remaining > 0 and channel.wait_closed(remaining):
                    logger.debug("Sample channel closed while waiting; sampler stopping")
                    break
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception("Sampler for %s stopped unexpectedly", self.host)
        finally:
            self.state = "stopped"
            channel.finish_sending()


def start_sampler_thread(sampler: Sampler, channel: "SampleChannel[Sample]") -> threading.Thread:
    """Run the sampler in a detached daemon thread."""
    thread = threading.Thread(target=sampler.run, args=(channel,), name="rttgraph-sampler", daemon=True)
    thread.start()
    return thread
