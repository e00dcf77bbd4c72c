"""Shared telemetry state: sensor descriptors and their latest readings.

The poller thread is the only writer of values; the dashboard reads them on
every redraw. Each value lives in its own locked cell, so an update and a
snapshot never see a half-written reading and no table-wide lock exists.
"""

from __future__ import annotations

import enum
import math
import threading
from dataclasses import dataclass

INITIAL_VALUE = 1.0


class Category(enum.Enum):
    CPU = "cpu"
    GPU = "gpu"
    HDD = "hdd"
    FAN = "fan"
    OTHER = "other"


@dataclass(frozen=True)
class SensorDescriptor:
    """One sensor found at startup. Never mutated afterwards."""

    id: str
    name: str
    category: Category
    max: float = math.nan  # NaN = ceiling unknown
    listed: bool = True  # only meaningful for Category.OTHER


class ValueCell:
    """A single numeric slot, read and written atomically."""

    __slots__ = ("_lock", "_value")

    def __init__(self, value: float = INITIAL_VALUE) -> None:
        self._lock = threading.Lock()
        self._value = value

    def get(self) -> float:
        with self._lock:
            return self._value

    def set(self, value: float) -> None:
        with self._lock:
            self._value = value


class TelemetryTable:
    """Fixed, ordered ``(SensorDescriptor, value)`` entries."""

    def __init__(self, descriptors: list[SensorDescriptor]) -> None:
        seen: set[str] = set()
        for d in descriptors:
            if d.id in seen:
                raise ValueError(f"duplicate sensor id: {d.id!r}")
            seen.add(d.id)
        self._entries: tuple[tuple[SensorDescriptor, ValueCell], ...] = tuple(
            (d, ValueCell()) for d in descriptors
        )

    def __len__(self) -> int:
        return len(self._entries)

    def update(self, sensor_id: str, value: float) -> bool:
        """Store *value* for *sensor_id*. Returns False if no sensor matches."""
        for descriptor, cell in self._entries:
            if descriptor.id == sensor_id:
                cell.set(value)
                return True
        return False

    def snapshot(self) -> list[tuple[SensorDescriptor, float]]:
        """Copy of every entry's current value, in discovery order."""
        return [(d, cell.get()) for d, cell in self._entries]
