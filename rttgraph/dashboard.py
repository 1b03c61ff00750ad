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
Dashboard loop for rttgraph.

The dashboard is the consumer side of the pipeline. Every tick it polls the
keyboard for a bounded time, drains whatever samples are pending without
waiting, folds them into the HistoryWindow and redraws the whole frame. The
HistoryWindow lives here and is never touched by the sampling thread.
"""

import logging
import threading
import time
from typing import Any, Callable, Optional

from rttgraph.channel import SampleChannel
from rttgraph.history import HistoryWindow
from rttgraph.input_keys import is_quit_key, read_key
from rttgraph.ui_render import build_frame

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.01

EXIT_QUIT = "quit"
EXIT_SIGNAL = "signal"
EXIT_PRODUCER = "producer-exit"


class Dashboard:
    """Poll input, drain samples, redraw; repeat until a quit trigger fires."""

    def __init__(
        self,
        host: str,
        history: int,
        channel: SampleChannel,
        renderer: Any,
        key_reader: Callable[[float], Optional[str]] = read_key,
        stop_event: Optional[threading.Event] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        use_color: bool = True,
    ) -> None:
        self.host = host
        self.window = HistoryWindow(history)
        self.channel = channel
        self.renderer = renderer
        self.key_reader = key_reader
        self.stop_event = stop_event if stop_event is not None else threading.Event()
        self.poll_interval = poll_interval
        self.use_color = use_color
        self.state = "running"

    def drain(self) -> int:
        """Apply every pending sample in arrival order; returns how many."""
        samples = self.channel.drain()
        for sample in samples:
            self.window.apply(sample)
        return len(samples)

    def redraw(self) -> None:
        size = self.renderer.size()
        frame = build_frame(self.host, self.window, size.columns, size.lines, self.use_color, self.renderer.point_char)
        self.renderer.draw(frame)

    def poll_keys(self) -> bool:
        """
        Read every key that is already waiting; True if any of them quits.

        Only the first read waits, for at most poll_interval.
        """
        key = self.key_reader(self.poll_interval)
        while key is not None:
            if is_quit_key(key):
                return True
            key = self.key_reader(0.0)
        return False

    def tick(self) -> Optional[str]:
        """
        Run one dashboard iteration.

        Returns:
            The exit reason ('quit', 'signal', 'producer-exit') or None to keep running
        """
        started = time.monotonic()
        if self.poll_keys():
            return EXIT_QUIT

        # Key readers return early when stdin is not a terminal.
        remaining = self.poll_interval - (time.monotonic() - started)
        if remaining > 0:
            self.stop_event.wait(remaining)

        self.drain()
        self.redraw()

        if self.stop_event.is_set():
            return EXIT_SIGNAL
        if self.channel.sender_finished and self.channel.pending() == 0:
            return EXIT_PRODUCER
        return None

    def run(self) -> str:
        """
        Own the terminal and loop until a quit trigger fires.

        The renderer context restores the terminal on every exit path; the
        channel is closed on the way out so the sampler stops at its next send.
        """
        try:
            with self.renderer:
                while True:
                    reason = self.tick()
                    if reason is not None:
                        break
        finally:
            self.state = "exiting"
            self.channel.close()
        logger.info(
            "Dashboard for %s exiting (%s) after %d samples, %d lost",
            self.host,
            reason,
            self.window.total_count,
            self.window.lost_count,
        )
        return reason
