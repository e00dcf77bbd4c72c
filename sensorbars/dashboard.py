"""Live hardware sensor dashboard: temperatures and fan speeds as bar charts.

A background poller keeps the telemetry table current; the main thread
redraws from a fresh snapshot on every tick or keypress and quits on the
quit key.

Usage:
    uv run sensorbars
    uv run sensorbars --config path/to/config.toml
"""

from __future__ import annotations

import argparse
import curses
import enum
import functools
import logging
import queue
import sys
from pathlib import Path
from typing import Any

from sensorbars import sensors
from sensorbars.charts import Geometry, build_frame
from sensorbars.config import dump_default_config, load_config
from sensorbars.events import QUIT_KEY, Channel, Event, Input, start_producers
from sensorbars.logging_config import configure_logging
from sensorbars.poller import start_poller
from sensorbars.sensors import SensorStartupError
from sensorbars.telemetry import TelemetryTable
from sensorbars.terminal import CursesTerminal, TerminalError, read_keys

log = logging.getLogger(__name__)


class DashboardState(enum.Enum):
    RUNNING = "running"
    TERMINATING = "terminating"


class Dashboard:
    """Single consumer of the event channel; decides when to redraw and quit."""

    def __init__(
        self,
        terminal: CursesTerminal,
        table: TelemetryTable,
        channel: Channel,
        quit_key: str = QUIT_KEY,
    ) -> None:
        self.terminal = terminal
        self.table = table
        self.channel = channel
        self.quit_key = quit_key
        self.state = DashboardState.RUNNING
        self.geometry: Geometry | None = None

    def sync_geometry(self) -> Geometry:
        """Apply a terminal resize if the size changed since the last check.

        Returns the current geometry.
        """
        size = self.terminal.current_size()
        if size != self.geometry:
            if self.geometry is not None:
                log.debug("terminal resized", extra={"geometry": size})
                self.terminal.resize(size)
            self.geometry = size
        return size

    def draw(self, geometry: Geometry) -> None:
        frame = build_frame(self.table.snapshot(), geometry)
        self.terminal.paint(frame)

    def handle(self, event: Event) -> DashboardState:
        if isinstance(event, Input) and event.key == self.quit_key:
            self.state = DashboardState.TERMINATING
            return self.state
        self.draw(self.sync_geometry())
        return self.state

    def run(self) -> None:
        """Draw once, then redraw on every event until the quit key arrives."""
        self.terminal.clear()
        self.terminal.hide_cursor()
        self.draw(self.sync_geometry())

        while self.state is DashboardState.RUNNING:
            self.handle(self.channel.get())

        self.terminal.show_cursor()


def _run_dashboard(
    stdscr: curses.window, table: TelemetryTable, config: dict[str, Any]
) -> None:
    terminal = CursesTerminal(stdscr)
    channel: Channel = queue.Queue()
    quit_key = str(config["quit_key"])
    start_producers(
        channel,
        read_keys(sys.stdin.fileno()),
        quit_key=quit_key,
        tick_interval=float(config["tick_interval"]),
    )
    Dashboard(terminal, table, channel, quit_key).run()


# ── CLI entry point ────────────────────────────────────────────────────────


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Live bar charts of hardware temperatures and fan speeds.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        metavar="PATH",
        help="Path to TOML config file",
    )
    parser.add_argument(
        "--print-config",
        action="store_true",
        help="Print the default configuration as TOML and exit",
    )
    args = parser.parse_args(argv)

    if args.print_config:
        print(dump_default_config(), end="")
        return 0

    config = load_config(args.config)
    configure_logging(config["logging"]["level"], config["logging"]["file"])

    discover = functools.partial(
        sensors.discover,
        hidden=config["hidden_sensors"],
        use_nvidia_smi=bool(config["nvidia_smi"]),
    )
    try:
        table, _ = start_poller(discover, float(config["poll_interval"]))
    except SensorStartupError as e:
        print(f"sensorbars: {e}", file=sys.stderr)
        return 1

    try:
        curses.wrapper(_run_dashboard, table, config)
    except (TerminalError, curses.error) as e:
        log.error("terminal failure: %s", e)
        print(f"sensorbars: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
