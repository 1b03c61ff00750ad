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
Bounded sample channel between the sampling thread and the dashboard.

The channel is a single-producer/single-consumer FIFO built on queue.Queue.
A full channel makes send() wait (back-pressure), never drop. Either side can
signal that it is gone: the receiver closes the channel when the dashboard
exits, and the sender marks itself finished when the sampling loop ends.
"""

import queue
import threading
from typing import Generic, List, Optional, TypeVar

DEFAULT_CAPACITY = 256
SEND_POLL_SECONDS = 0.1

T = TypeVar("T")


class ChannelClosed(Exception):
    """Raised by send() once the receiving side has gone away."""


class SampleChannel(Generic[T]):
    """Bounded, ordered, lossless-while-open handoff queue."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("channel capacity must be at least 1")
        self.capacity = capacity
        self._queue: "queue.Queue[T]" = queue.Queue(maxsize=capacity)
        self._closed = threading.Event()
        self._sender_done = threading.Event()

    def send(self, item: T) -> None:
        """
        Enqueue an item, waiting while the channel is full.

        Raises:
            ChannelClosed: If the receiver closed the channel before or while waiting
        """
        while True:
            if self._closed.is_set():
                raise ChannelClosed("receiver is gone")
            try:
                self._queue.put(item, timeout=SEND_POLL_SECONDS)
                return
            except queue.Full:
                continue

    def try_recv(self) -> Optional[T]:
        """Return the oldest pending item without blocking, or None."""
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None

    def drain(self) -> List[T]:
        """Return every item currently pending, oldest first."""
        items: List[T] = []
        while True:
            try:
                items.append(self._queue.get_nowait())
            except queue.Empty:
                break
        return items

    def pending(self) -> int:
        """Approximate number of queued items."""
        return self._queue.qsize()

    def close(self) -> None:
        """Close the receiving side; pending and future items are discarded."""
        self._closed.set()
        self.drain()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def wait_closed(self, timeout: float) -> bool:
        """Sleep up to timeout seconds, returning early (True) if closed."""
        return self._closed.wait(timeout)

    def finish_sending(self) -> None:
        """Mark the producer as finished; already queued items stay readable."""
        self._sender_done.set()

    @property
    def sender_finished(self) -> bool:
        return self._sender_done.is_set()
