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
History window for rttgraph.

This module provides the fixed-capacity rolling buffer of recent RTT values
together with the run-wide sent/lost counters. The window is owned by the
dashboard thread only and is never shared with the sampler.
"""

from typing import Any, Iterator, List, Optional


class HistoryWindow:
    """
    Fixed-capacity ring of optional RTT values plus cumulative counters.

    The ring is a preallocated slot list addressed by a start index and a
    length. When full, the oldest slot is evicted before the new value is
    written, so the length never exceeds capacity.
    """

    def __init__(self, capacity: int) -> None:
        """
        Initialize an empty window.

        Args:
            capacity: Number of RTT values kept for the chart and the mean
        """
        if capacity < 1:
            raise ValueError("history capacity must be at least 1")
        self.capacity = capacity
        self._slots: List[Optional[float]] = [None] * capacity
        self._start = 0
        self._length = 0
        self.total_count = 0
        self.lost_count = 0
        self.last: Optional[float] = None

    def __len__(self) -> int:
        return self._length

    def __iter__(self) -> Iterator[Optional[float]]:
        for offset in range(self._length):
            yield self._slots[(self._start + offset) % self.capacity]

    def values(self) -> List[Optional[float]]:
        """Return the ring contents, oldest first."""
        return list(self)

    def push(self, rtt: Optional[float]) -> None:
        """Append a value, evicting the oldest one first when full."""
        if self._length == self.capacity:
            self._start = (self._start + 1) % self.capacity
            self._length -= 1
        self._slots[(self._start + self._length) % self.capacity] = rtt
        self._length += 1

    def apply(self, sample: Any) -> None:
        """
        Fold one sample into the window and the run-wide counters.

        Args:
            sample: Object with an ``rtt`` attribute (None means lost)
        """
        rtt = sample.rtt
        self.total_count += 1
        if rtt is None:
            self.lost_count += 1
        self.last = rtt
        self.push(rtt)
