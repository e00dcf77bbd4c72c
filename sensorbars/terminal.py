"""curses-backed terminal: size queries, cursor control and bar chart painting.

Also decodes raw stdin bytes into key names for the input thread, so curses
itself is only ever touched from the main thread.
"""

from __future__ import annotations

import codecs
import curses
import os
import sys
from collections.abc import Callable, Iterable, Iterator
from typing import Any

from sensorbars.charts import ChartPanel, Geometry

BAR_WIDTH = 9
BAR_GAP = 1
BAR_FILL = "█"
BLOCKS = " ▁▂▃▄▅▆▇█"  # indexed by eighths

COLORS: dict[str, int] = {
    "green": curses.COLOR_GREEN,
    "yellow": curses.COLOR_YELLOW,
    "cyan": curses.COLOR_CYAN,
    "magenta": curses.COLOR_MAGENTA,
    "white": curses.COLOR_WHITE,
}


class TerminalError(RuntimeError):
    """The terminal could not be queried, resized or painted."""


# ── Bar geometry ───────────────────────────────────────────────────────────


def bar_eighths(value: int, ceiling: int, rows: int) -> int:
    """Height of a bar in eighths of a cell, capped at *rows* full cells."""
    if ceiling <= 0 or rows <= 0 or value <= 0:
        return 0
    return min(value * rows * 8 // ceiling, rows * 8)


def bars_that_fit(width: int) -> int:
    return max(0, (width + BAR_GAP) // (BAR_WIDTH + BAR_GAP))


def _centered(text: str, width: int) -> tuple[int, str]:
    text = text[:width]
    return (width - len(text)) // 2, text


# ── Curses adapter ─────────────────────────────────────────────────────────


def _safe(win: curses.window, *args: Any) -> None:
    """addstr wrapper that swallows out-of-bounds errors."""
    try:
        win.addstr(*args)
    except curses.error:
        pass


class CursesTerminal:
    """Paints ChartPanels onto a curses screen."""

    def __init__(self, stdscr: curses.window) -> None:
        self.stdscr = stdscr
        self._pairs: dict[str, tuple[int, int]] = {}
        self._init_colors()

    def _init_colors(self) -> None:
        try:
            curses.start_color()
            curses.use_default_colors()
            for i, (name, color) in enumerate(COLORS.items()):
                bar_pair, value_pair = 2 * i + 1, 2 * i + 2
                curses.init_pair(bar_pair, color, -1)
                curses.init_pair(value_pair, curses.COLOR_BLACK, color)
                self._pairs[name] = (bar_pair, value_pair)
        except curses.error as e:
            raise TerminalError(f"cannot initialise colours: {e}") from e

    def current_size(self) -> Geometry:
        try:
            size = os.get_terminal_size(sys.__stdout__.fileno())
        except (OSError, AttributeError, ValueError) as e:
            raise TerminalError(f"cannot query terminal size: {e}") from e
        return Geometry(width=size.columns, height=size.lines)

    def resize(self, geometry: Geometry) -> None:
        try:
            curses.resizeterm(geometry.height, geometry.width)
        except curses.error as e:
            raise TerminalError(f"cannot resize to {geometry}: {e}") from e

    def clear(self) -> None:
        try:
            self.stdscr.clear()
            self.stdscr.refresh()
        except curses.error as e:
            raise TerminalError(f"cannot clear terminal: {e}") from e

    def hide_cursor(self) -> None:
        self._set_cursor(0)

    def show_cursor(self) -> None:
        self._set_cursor(1)

    def _set_cursor(self, visibility: int) -> None:
        try:
            curses.curs_set(visibility)
        except curses.error as e:
            raise TerminalError(f"cannot change cursor visibility: {e}") from e

    def paint(self, frame: list[ChartPanel]) -> None:
        try:
            self.stdscr.erase()
            for panel in frame:
                self._draw_chart(panel)
            self.stdscr.refresh()
        except curses.error as e:
            raise TerminalError(f"cannot paint frame: {e}") from e

    def _draw_box(self, panel: ChartPanel) -> curses.window | None:
        """Draw a bordered, titled box and return it."""
        r = panel.rect
        max_y, max_x = self.stdscr.getmaxyx()
        h = min(r.height, max_y - r.y)
        w = min(r.width, max_x - r.x)
        if h < 3 or w < 4:
            return None
        box = self.stdscr.subwin(h, w, r.y, r.x)
        box.box()
        if panel.title and len(panel.title) + 2 < w:
            _safe(box, 0, 1, panel.title, curses.A_BOLD)
        return box

    def _draw_chart(self, panel: ChartPanel) -> None:
        box = self._draw_box(panel)
        if box is None:
            return
        h, w = box.getmaxyx()
        inner_w = w - 2
        chart_rows = h - 3  # inner height minus the label row
        label_row = h - 2
        bar_pair, value_pair = self._pairs[panel.color]
        bar_attr = curses.color_pair(bar_pair)
        value_attr = curses.color_pair(value_pair)

        for i, (label, value) in enumerate(panel.data[: bars_that_fit(inner_w)]):
            x = 1 + i * (BAR_WIDTH + BAR_GAP)
            full, part = divmod(bar_eighths(value, panel.ceiling, chart_rows), 8)
            for row in range(full):
                _safe(box, chart_rows - row, x, BAR_FILL * BAR_WIDTH, bar_attr)
            if part and full < chart_rows:
                _safe(box, chart_rows - full, x, BLOCKS[part] * BAR_WIDTH, bar_attr)
            if full > 0:
                dx, text = _centered(str(value), BAR_WIDTH)
                _safe(box, chart_rows, x + dx, text, value_attr)
            dx, text = _centered(label, BAR_WIDTH)
            _safe(box, label_row, x + dx, text)


# ── Key decoding ───────────────────────────────────────────────────────────

CSI_KEYS: dict[str, str] = {
    "\x1b[A": "up",
    "\x1b[B": "down",
    "\x1b[C": "right",
    "\x1b[D": "left",
    "\x1b[H": "home",
    "\x1b[F": "end",
    "\x1b[3~": "delete",
    "\x1b[5~": "pageup",
    "\x1b[6~": "pagedown",
}

# Application cursor mode (keypad on) sends these as ESC O <final>
SS3_KEYS: dict[str, str] = {
    "A": "up",
    "B": "down",
    "C": "right",
    "D": "left",
    "H": "home",
    "F": "end",
    "P": "f1",
    "Q": "f2",
    "R": "f3",
    "S": "f4",
}


def _decode_escape(text: str, i: int) -> tuple[str | None, int]:
    """Decode the escape sequence starting at ``text[i]``.

    Returns the key (None for unknown sequences) and the index after it.
    """
    if text.startswith("\x1b[", i):
        j = i + 2
        while j < len(text) and not ("@" <= text[j] <= "~"):
            j += 1
        return CSI_KEYS.get(text[i : j + 1]), j + 1
    if text.startswith("\x1bO", i) and i + 2 < len(text):
        return SS3_KEYS.get(text[i + 2]), i + 3
    nxt = text[i + 1 : i + 2]
    if nxt and nxt != "\x1b" and nxt.isprintable():
        return f"alt-{nxt}", i + 2
    return "esc", i + 1


def _decode_text(text: str) -> Iterator[str]:
    i = 0
    while i < len(text):
        c = text[i]
        if c == "\x1b":
            key, i = _decode_escape(text, i)
            if key is not None:
                yield key
            continue
        if c in ("\r", "\n"):
            yield "enter"
        elif c in ("\x7f", "\x08"):
            yield "backspace"
        elif c == "\t":
            yield "tab"
        elif ord(c) < 32:
            yield f"ctrl-{chr(ord(c) + 96)}"
        else:
            yield c
        i += 1


def decode_keys(chunks: Iterable[bytes]) -> Iterator[str]:
    """Decode raw terminal input into key names.

    Escape sequences are expected to arrive within a single chunk, which is
    how terminals deliver them.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    for chunk in chunks:
        yield from _decode_text(decoder.decode(chunk))


def read_keys(
    fd: int = 0, read: Callable[[int, int], bytes] = os.read
) -> Iterator[str]:
    """Blocking key source over a terminal file descriptor; ends at EOF."""

    def chunks() -> Iterator[bytes]:
        while True:
            chunk = read(fd, 64)
            if not chunk:
                return
            yield chunk

    yield from decode_keys(chunks())
