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
Statistics computation for rttgraph.

This module provides the windowed mean, the run-wide loss percentage, the
chart's Y-axis scale and the footer labels, all derived from a HistoryWindow.
"""

import math
from typing import List, Optional, Tuple

from rttgraph.history import HistoryWindow

Y_AXIS_FLOOR_MS = 10.0
Y_AXIS_HEADROOM = 1.20


def visible_rtts(window: HistoryWindow) -> List[float]:
    """Return the non-lost RTT values currently in the window."""
    return [value for value in window if value is not None]


def mean_rtt(window: HistoryWindow) -> Optional[float]:
    """
    Compute the arithmetic mean of the non-lost RTTs in the window.

    Lost samples are skipped, never counted as zero.

    Returns:
        Mean RTT in milliseconds, or None if the window holds no reply
    """
    values = visible_rtts(window)
    if not values:
        return None
    return sum(values) / len(values)


def loss_percent(window: HistoryWindow) -> float:
    """Loss percentage over the whole run (0.0 before the first sample)."""
    if window.total_count == 0:
        return 0.0
    return window.lost_count * 100.0 / window.total_count


def y_axis_max(window: HistoryWindow) -> int:
    """
    Compute the chart's Y-axis upper bound.

    Keeps a visible floor of 10 ms and 20% headroom over the largest RTT.
    """
    peak = max(visible_rtts(window), default=Y_AXIS_FLOOR_MS)
    return int(math.ceil(Y_AXIS_HEADROOM * max(Y_AXIS_FLOOR_MS, peak)))


def chart_points(window: HistoryWindow) -> List[Tuple[int, float]]:
    """Return (index, rtt) pairs for plotting; lost indices are omitted."""
    return [(index, value) for index, value in enumerate(window) if value is not None]


def format_last(window: HistoryWindow) -> str:
    if window.total_count == 0:
        return "-"
    return f"{window.last:.1f} ms" if window.last is not None else "timeout"


def format_mean(window: HistoryWindow) -> str:
    avg = mean_rtt(window)
    return f"{avg:.1f} ms" if avg is not None else "-"


def format_loss(window: HistoryWindow) -> str:
    return f"{loss_percent(window):.1f}%"
