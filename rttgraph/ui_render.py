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
rttgraph UI Rendering Module

This module contains the terminal renderer (raw mode, alternate screen,
diff-based redraw) and the pure functions that lay out one dashboard frame:
a boxed header, a boxed latency chart and a boxed footer.
"""

import contextlib
import os
import re
import sys
from typing import IO, List, Optional, Sequence, Tuple

from rttgraph.history import HistoryWindow
from rttgraph.input_keys import terminal_raw_mode
from rttgraph.stats import chart_points, format_last, format_loss, format_mean, y_axis_max

ANSI_RESET = "\x1b[0m"
ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-9;]*m")
STYLE_COLORS = {
    "title": "\x1b[1;36m",  # Bold cyan
    "point": "\x1b[32m",  # Green
    "last": "\x1b[32m",  # Green
    "avg": "\x1b[33m",  # Yellow
    "loss": "\x1b[31m",  # Red
}
ENTER_ALT_SCREEN = "\x1b[?1049h"
LEAVE_ALT_SCREEN = "\x1b[?1049l"
HIDE_CURSOR = "\x1b[?25l"
SHOW_CURSOR = "\x1b[?25h"
CLEAR_SCREEN = "\x1b[2J\x1b[H"

HEADER_HEIGHT = 3
FOOTER_HEIGHT = 3
POINT_CHAR = "•"
ASCII_POINT_CHAR = "*"
QUIT_HINT = "quit: q / Esc / Ctrl-C"


# ============================================================================
# ANSI/Text Utility Functions
# ============================================================================


def strip_ansi(text: str) -> str:
    """Remove ANSI SGR sequences from text."""
    return ANSI_ESCAPE_RE.sub("", text)


def visible_len(text: str) -> int:
    """Length of text as displayed (ANSI sequences excluded)."""
    return len(strip_ansi(text))


def truncate_visible(text: str, width: int) -> str:
    """Truncate text to a visible width, keeping ANSI sequences intact."""
    if width <= 0:
        return ""
    if visible_len(text) <= width:
        return text
    output = []
    visible = 0
    index = 0
    while index < len(text) and visible < width:
        match = ANSI_ESCAPE_RE.match(text, index)
        if match:
            output.append(match.group(0))
            index = match.end()
            continue
        output.append(text[index])
        visible += 1
        index += 1
    if any(ANSI_ESCAPE_RE.match(chunk) for chunk in output):
        output.append(ANSI_RESET)
    return "".join(output)


def pad_visible(text: str, width: int) -> str:
    """Truncate or pad text to exactly ``width`` visible columns."""
    truncated = truncate_visible(text, width)
    return truncated + " " * max(0, width - visible_len(truncated))


def colorize_text(text: str, style: Optional[str], use_color: bool) -> str:
    """Wrap text in the ANSI color for style when color is enabled."""
    if not use_color or style not in STYLE_COLORS:
        return text
    return f"{STYLE_COLORS[style]}{text}{ANSI_RESET}"


# ============================================================================
# Layout/Geometry Functions
# ============================================================================


def get_terminal_size(fallback: Tuple[int, int] = (80, 24)) -> os.terminal_size:
    """
    Get the terminal size by directly querying the terminal.

    os.get_terminal_size() is used instead of shutil so that the size follows
    live resizes rather than COLUMNS/LINES from the environment.

    Args:
        fallback: Tuple of (columns, lines) to use if terminal size
                  cannot be determined

    Returns:
        os.terminal_size with columns and lines attributes
    """
    for stream in (sys.stdout, sys.stderr, sys.stdin):
        try:
            if stream.isatty():
                return os.get_terminal_size(stream.fileno())
        except (AttributeError, ValueError, OSError):
            continue
    return os.terminal_size(fallback)


def split_bands(height: int) -> Tuple[int, int, int]:
    """Split the frame height into (header, chart, footer) band heights."""
    header = min(HEADER_HEIGHT, height)
    footer = min(FOOTER_HEIGHT, max(0, height - header))
    chart = max(0, height - header - footer)
    return header, chart, footer


def pad_lines(lines: Sequence[str], width: int, height: int) -> List[str]:
    """Pad lines to fill the specified width and height."""
    padded = [pad_visible(line, width) for line in lines[:height]]
    while len(padded) < height:
        padded.append("".ljust(width))
    return padded


def box_lines(lines: Sequence[str], width: int, height: int, title: str = "") -> List[str]:
    """Draw a box around lines, with an optional title in the top border."""
    if width < 2 or height < 2:
        return pad_lines(lines, width, height)
    inner_width = width - 2
    inner_height = height - 2
    inner_lines = pad_lines(lines, inner_width, inner_height)
    top = "-" * inner_width
    if title and len(title) <= inner_width:
        top = title + top[len(title) :]
    boxed = [f"+{top}+"]
    boxed.extend(f"|{line}|" for line in inner_lines)
    boxed.append(f"+{'-' * inner_width}+")
    return boxed


# ============================================================================
# Chart
# ============================================================================


def plot_column(index: int, history: int, plot_width: int) -> int:
    """Map a sample index in [0, history] to a plot column."""
    if plot_width <= 1 or history <= 0:
        return 0
    return min(plot_width - 1, int(round(index * (plot_width - 1) / history)))


def plot_row(value: float, y_max: float, plot_height: int) -> int:
    """Map an RTT to a plot row (0 is the top row)."""
    if plot_height <= 1 or y_max <= 0:
        return max(0, plot_height - 1)
    scaled = int(round(min(value, y_max) / y_max * (plot_height - 1)))
    return plot_height - 1 - scaled


def build_chart_grid(
    points: Sequence[Tuple[int, float]],
    history: int,
    y_max: float,
    width: int,
    height: int,
    point: str = POINT_CHAR,
) -> List[List[str]]:
    """Scatter (index, rtt) points onto a width x height character grid."""
    grid = [[" " for _ in range(width)] for _ in range(height)]
    if width <= 0 or height <= 0:
        return grid
    for index, value in points:
        grid[plot_row(value, y_max, height)][plot_column(index, history, width)] = point
    return grid


def chart_point_char(stream: Optional[IO[str]] = None) -> str:
    """Return the plot glyph the stream can encode, falling back to ASCII."""
    if stream is None:
        stream = sys.stdout
    encoding = getattr(stream, "encoding", None)
    if not encoding:
        return ASCII_POINT_CHAR
    try:
        POINT_CHAR.encode(encoding)
    except (UnicodeEncodeError, LookupError):
        return ASCII_POINT_CHAR
    return POINT_CHAR


def render_chart_view(
    window: HistoryWindow, width: int, height: int, use_color: bool = False, point: str = POINT_CHAR
) -> List[str]:
    """
    Render the boxed latency chart.

    The Y axis spans [0, y_axis_max] with labels at 0, half and top; the X axis
    spans [0, capacity] with labels at 0, half and capacity. Lost samples are
    left as gaps.
    """
    if width <= 0 or height <= 0:
        return []
    inner_width = max(0, width - 2)
    inner_height = max(0, height - 2)
    y_max = y_axis_max(window)
    history = window.capacity

    y_labels = ["0", f"{y_max / 2:.0f}", f"{y_max:.0f}"]
    label_width = max(len(label) for label in y_labels)
    # y label column, " |" separator, then the plot; two rows for the x axis
    plot_width = max(1, inner_width - label_width - 2)
    plot_height = max(1, inner_height - 2)

    grid = build_chart_grid(chart_points(window), history, y_max, plot_width, plot_height, point)
    y_positions = {
        0: y_labels[2],
        plot_height // 2: y_labels[1],
        plot_height - 1: y_labels[0],
    }

    lines = []
    for row_index, row in enumerate(grid):
        label = y_positions.get(row_index, "").rjust(label_width)
        cells = "".join(colorize_text(cell, "point", use_color) if cell != " " else cell for cell in row)
        lines.append(f"{label} |{cells}")

    axis_pad = " " * (label_width + 1)
    lines.append(f"{axis_pad}+{'-' * plot_width}")
    x_labels = [(0, "0"), (history // 2, str(history // 2)), (history, str(history))]
    x_axis = [" "] * plot_width
    for index, text in x_labels:
        start = min(max(0, plot_column(index, history, plot_width) - len(text) // 2), max(0, plot_width - len(text)))
        for offset, char in enumerate(text[: plot_width - start]):
            x_axis[start + offset] = char
    lines.append(f"{axis_pad} {''.join(x_axis)}")

    return box_lines(lines, width, height, title=" Latency (ms) ")


def render_header(host: str, width: int, height: int, use_color: bool = False) -> List[str]:
    """Render the boxed info header."""
    title = colorize_text("rttgraph", "title", use_color)
    return box_lines([f"{title}  host: {host}"], width, height, title=" Info ")


def render_footer(window: HistoryWindow, width: int, height: int, use_color: bool = False) -> List[str]:
    """Render the boxed last/avg/loss footer."""
    line = (
        f"last: {colorize_text(format_last(window), 'last', use_color)}"
        f"   avg: {colorize_text(format_mean(window), 'avg', use_color)}"
        f"   loss: {colorize_text(format_loss(window), 'loss', use_color)}"
        f"   {QUIT_HINT}"
    )
    return box_lines([line], width, height)


def build_frame(
    host: str,
    window: HistoryWindow,
    width: int,
    height: int,
    use_color: bool = False,
    point: str = POINT_CHAR,
) -> List[str]:
    """Lay out a full frame: header, chart and footer bands."""
    if width <= 0 or height <= 0:
        return []
    header_height, chart_height, footer_height = split_bands(height)
    lines: List[str] = []
    lines.extend(render_header(host, width, header_height, use_color))
    lines.extend(render_chart_view(window, width, chart_height, use_color, point))
    lines.extend(render_footer(window, width, footer_height, use_color))
    return lines[:height]


# ============================================================================
# Terminal Renderer
# ============================================================================


class TerminalRenderer:
    """
    Owns the terminal for the lifetime of the dashboard.

    Entering switches stdin to raw mode and stdout to the alternate screen;
    exiting always switches both back, whether the body returned or raised.
    """

    def __init__(self, stream: Optional[IO[str]] = None, stdin: Optional[IO[str]] = None) -> None:
        self.stream = stream if stream is not None else sys.stdout
        self.stdin = stdin if stdin is not None else sys.stdin
        self._cleanup: Optional[contextlib.ExitStack] = None
        self._last_lines: Optional[List[str]] = None
        self.point_char = chart_point_char(self.stream)

    def size(self) -> os.terminal_size:
        return get_terminal_size(fallback=(80, 24))

    def __enter__(self) -> "TerminalRenderer":
        cleanup = contextlib.ExitStack()
        try:
            if self.stdin.isatty():
                cleanup.enter_context(terminal_raw_mode(self.stdin.fileno()))
            cleanup.callback(self._leave_screen)
            self.stream.write(ENTER_ALT_SCREEN + HIDE_CURSOR + CLEAR_SCREEN)
            self.stream.flush()
        except BaseException:
            cleanup.close()
            raise
        self._cleanup = cleanup
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.restore()

    def _leave_screen(self) -> None:
        self.stream.write(ANSI_RESET + SHOW_CURSOR + LEAVE_ALT_SCREEN)
        self.stream.flush()

    def restore(self) -> None:
        """Leave the alternate screen and restore termios; runs at most once."""
        cleanup, self._cleanup = self._cleanup, None
        self._last_lines = None
        if cleanup is not None:
            cleanup.close()

    def draw(self, lines: List[str]) -> None:
        """Write a frame, rewriting only the lines that changed."""
        if not lines:
            return

        if self._last_lines is None or len(self._last_lines) != len(lines):
            output_chunks = [CLEAR_SCREEN]
            for index, line in enumerate(lines):
                output_chunks.append(f"\x1b[{index + 1};1H\x1b[2K{line}")
        else:
            output_chunks = []
            for index, line in enumerate(lines):
                if self._last_lines[index] == line:
                    continue
                output_chunks.append(f"\x1b[{index + 1};1H\x1b[2K{line}")

        if output_chunks:
            self.stream.write("".join(output_chunks))
            self.stream.flush()
        self._last_lines = list(lines)
