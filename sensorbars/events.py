"""Event channel producers: keyboard input and the redraw timer.

Both producers feed one FIFO ``queue.Queue``; the dashboard is its only
consumer.
"""

from __future__ import annotations

import queue
import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass

TICK_INTERVAL = 0.5
QUIT_KEY = "q"


@dataclass(frozen=True)
class Input:
    key: str


@dataclass(frozen=True)
class Tick:
    pass


Event = Input | Tick
Channel = queue.Queue[Event]


def input_listener(keys: Iterable[str], channel: Channel, quit_key: str = QUIT_KEY) -> None:
    """Forward decoded keys as Input events; stop after forwarding the quit key."""
    for key in keys:
        channel.put(Input(key))
        if key == quit_key:
            break


def tick_source(
    channel: Channel,
    interval: float = TICK_INTERVAL,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Send a Tick every *interval* seconds, forever."""
    while True:
        channel.put(Tick())
        sleep(interval)


def start_producers(
    channel: Channel,
    keys: Iterable[str],
    quit_key: str = QUIT_KEY,
    tick_interval: float = TICK_INTERVAL,
) -> tuple[threading.Thread, threading.Thread]:
    """Spawn the input and tick threads. Both are daemons left to process exit."""
    listener = threading.Thread(
        target=input_listener,
        args=(keys, channel, quit_key),
        name="input-listener",
        daemon=True,
    )
    ticker = threading.Thread(
        target=tick_source,
        args=(channel, tick_interval),
        name="tick-source",
        daemon=True,
    )
    listener.start()
    ticker.start()
    return listener, ticker
