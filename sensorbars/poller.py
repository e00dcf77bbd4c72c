"""Background sensor poller.

Runs discovery and the update stream on a dedicated thread with its own
asyncio event loop, writing every reading into the shared TelemetryTable.
It never triggers a redraw; the dashboard samples the table on its own
schedule.
"""

from __future__ import annotations

import asyncio
import logging
import queue
import threading
from collections.abc import AsyncIterator, Callable

from sensorbars.sensors import SensorStartupError
from sensorbars.telemetry import SensorDescriptor, TelemetryTable

log = logging.getLogger(__name__)

Discover = Callable[
    [float], tuple[list[SensorDescriptor], AsyncIterator[tuple[str, float]]]
]


async def consume(
    table: TelemetryTable, stream: AsyncIterator[tuple[str, float]]
) -> None:
    """Apply every ``(sensor_id, value)`` event to *table* until the stream ends."""
    async for sensor_id, value in stream:
        if not table.update(sensor_id, value):
            log.debug(
                "dropping update for unknown sensor",
                extra={"sensor_id": sensor_id, "value": value},
            )


async def _run(
    discover: Discover,
    poll_interval: float,
    handoff: queue.Queue[TelemetryTable | BaseException],
) -> None:
    try:
        descriptors, stream = discover(poll_interval)
        table = TelemetryTable(descriptors)
    except Exception as e:  # handed to the caller, re-raised there
        handoff.put(e)
        return
    log.info("telemetry table ready with %d sensors", len(table))
    handoff.put(table)
    await consume(table, stream)


def _thread_main(
    discover: Discover,
    poll_interval: float,
    handoff: queue.Queue[TelemetryTable | BaseException],
) -> None:
    try:
        asyncio.run(_run(discover, poll_interval, handoff))
    except Exception:
        log.exception("sensor poller stopped")
    else:
        log.warning("sensor stream ended")


def start_poller(
    discover: Discover, poll_interval: float
) -> tuple[TelemetryTable, threading.Thread]:
    """Start the poller thread and block until discovery has finished.

    Returns the shared table and the (daemon) poller thread.

    Raises:
        SensorStartupError: If discovery failed.
    """
    handoff: queue.Queue[TelemetryTable | BaseException] = queue.Queue(maxsize=1)
    thread = threading.Thread(
        target=_thread_main,
        args=(discover, poll_interval, handoff),
        name="sensor-poller",
        daemon=True,
    )
    thread.start()
    result = handoff.get()
    if isinstance(result, SensorStartupError):
        raise result
    if isinstance(result, BaseException):
        raise SensorStartupError(str(result)) from result
    return result, thread
