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
Keyboard input handling for rttgraph, with key names from the readchar library.

This module provides a bounded, non-blocking key poll for the dashboard loop,
ESC-sequence reconstruction so a lone Escape can be told apart from arrow
keys, and the raw-mode context manager used by the renderer.
"""

import contextlib
import os
import select
import sys
import termios
import tty
from collections import deque
from typing import Deque, Generator, List, Optional

import readchar
import readchar.key

# Gap allowed between the bytes of one escape sequence. Slow links (SSH, VMs)
# can split a sequence across reads.
ESCAPE_SEQUENCE_GAP = 0.03
READ_CHUNK_SIZE = 32

QUIT_KEYS = frozenset(("q", "Q", "escape", readchar.key.CTRL_C))

_pending_keys: Deque[str] = deque()


@contextlib.contextmanager
def terminal_raw_mode(fd: Optional[int] = None) -> Generator[None, None, None]:
    """Context manager that sets a terminal file descriptor to raw mode and restores it on exit.

    Terminal state is restored even when the body raises, so the shell is never
    left in an unusable state.

    Args:
        fd: Terminal file descriptor to configure.  Defaults to ``sys.stdin.fileno()``.
    """
    if fd is None:
        fd = sys.stdin.fileno()
    try:
        old_settings = termios.tcgetattr(fd)
    except termios.error:
        # Not a real terminal (a pipe or a test double); skip raw-mode setup.
        yield
        return
    try:
        tty.setraw(fd)
        yield
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)


def parse_escape_sequence(seq: str) -> Optional[str]:
    """
    Parse ANSI escape sequence to identify arrow keys.

    Args:
        seq: The escape sequence string (without the leading ESC)

    Returns:
        String identifier for arrow keys ('arrow_up', 'arrow_down', etc.)
        or None if sequence is not recognized
    """
    arrow_map = {
        "A": "arrow_up",
        "B": "arrow_down",
        "C": "arrow_right",
        "D": "arrow_left",
    }
    if not seq:
        return None
    if seq[0] in ("[", "O") and seq[-1] in arrow_map:
        return arrow_map[seq[-1]]
    return None


def _map_readchar_key(key_value: str) -> str:
    """
    Map a key string to the names used by the dashboard.

    A bare ESC becomes 'escape'; arrow sequences become 'arrow_*'; anything
    else is returned unchanged.
    """
    key_map = {
        readchar.key.ESC: "escape",
        readchar.key.UP: "arrow_up",
        readchar.key.DOWN: "arrow_down",
        readchar.key.LEFT: "arrow_left",
        readchar.key.RIGHT: "arrow_right",
    }
    if key_value in key_map:
        return key_map[key_value]

    if key_value and key_value[0] == "\x1b" and len(key_value) > 1:
        parsed = parse_escape_sequence(key_value[1:])
        if parsed:
            return parsed

    return key_value


def _stdin_ready(timeout: float) -> bool:
    ready, _, _ = select.select([sys.stdin], [], [], timeout)
    return bool(ready)


def _read_available(fd: int) -> str:
    # os.read instead of sys.stdin.read: the text layer buffers ahead, which
    # hides the tail of an escape sequence from select().
    return os.read(fd, READ_CHUNK_SIZE).decode("utf-8", errors="replace")


def _sequence_complete(seq: str) -> bool:
    return len(seq) >= 3 and (seq[-1].isalpha() or seq[-1] == "~")


def split_keys(data: str) -> List[str]:
    """
    Split one read into keys.

    Escape sequences introduced by ``ESC [`` or ``ESC O`` are kept whole; any
    other ESC stands alone.
    """
    keys = []
    index = 0
    while index < len(data):
        if data[index] != readchar.key.ESC:
            keys.append(data[index])
            index += 1
            continue
        seq = data[index]
        index += 1
        if index < len(data) and data[index] in "[O":
            while index < len(data):
                seq += data[index]
                index += 1
                if _sequence_complete(seq):
                    break
        keys.append(seq)
    return keys


def _awaits_more(key: str) -> bool:
    """True for a trailing ESC or an unfinished escape sequence."""
    if not key.startswith(readchar.key.ESC):
        return False
    return len(key) == 1 or not _sequence_complete(key)


def read_key(timeout: float = 0.0) -> Optional[str]:
    """
    Wait up to ``timeout`` seconds for one key press.

    Keys that arrived in the same read are queued and returned by the next
    calls without waiting. Returns 'escape' for a lone Escape, 'arrow_*' for
    arrow keys, the raw character otherwise, or None if stdin is not a TTY or
    nothing arrived.
    """
    if _pending_keys:
        return _pending_keys.popleft()

    if not sys.stdin.isatty():
        return None

    if not _stdin_ready(timeout):
        return None

    fd = sys.stdin.fileno()
    data = _read_available(fd)
    if not data:
        return None

    keys = split_keys(data)
    while _awaits_more(keys[-1]) and _stdin_ready(ESCAPE_SEQUENCE_GAP):
        more = _read_available(fd)
        if not more:
            break
        keys[-1:] = split_keys(keys[-1] + more)

    _pending_keys.extend(_map_readchar_key(key) for key in keys)
    return _pending_keys.popleft()


def clear_pending_keys() -> None:
    """Forget keys read but not yet returned."""
    _pending_keys.clear()


def is_quit_key(key: Optional[str]) -> bool:
    """Return True for q/Q, Escape and Ctrl-C."""
    return key in QUIT_KEYS
