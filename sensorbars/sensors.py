"""Hardware sensor discovery and polling.

Temperatures and fan speeds come from psutil; NVIDIA GPUs are read through
``nvidia-smi``, which psutil does not see. Discovery happens once; afterwards
the sensor set is fixed and readings arrive through an async stream of
``(sensor_id, value)`` pairs.
"""

from __future__ import annotations

import asyncio
import logging
import math
import subprocess
from collections.abc import AsyncIterator, Iterable, Iterator
from typing import Any

import psutil

from sensorbars.telemetry import Category, SensorDescriptor

log = logging.getLogger(__name__)

CHIP_CATEGORIES: dict[str, Category] = {
    "coretemp": Category.CPU,
    "k10temp": Category.CPU,
    "k8temp": Category.CPU,
    "zenpower": Category.CPU,
    "cpu_thermal": Category.CPU,
    "cpu-thermal": Category.CPU,
    "amdgpu": Category.GPU,
    "radeon": Category.GPU,
    "nouveau": Category.GPU,
    "nvme": Category.HDD,
    "drivetemp": Category.HDD,
}

NVIDIA_QUERY = [
    "nvidia-smi",
    "--query-gpu=index,name,temperature.gpu",
    "--format=csv,noheader,nounits",
]
NVIDIA_TIMEOUT = 3.0


class SensorStartupError(RuntimeError):
    """Sensors could not be enumerated; nothing can be displayed."""


# ── psutil sensors ─────────────────────────────────────────────────────────


def _declared_max(entry: Any) -> float:
    for attr in ("high", "critical"):
        value = getattr(entry, attr, None)
        if value is not None and value > 0:
            return float(value)
    return math.nan


def _chip_entries(chip: str, entries: Iterable[Any]) -> Iterator[tuple[str, str, Any]]:
    """Yield ``(sensor_id, display_name, entry)`` with ids unique per chip."""
    used: set[str] = set()
    for i, entry in enumerate(entries):
        key = entry.label or str(i)
        if key in used:
            key = f"{key}#{i}"
        used.add(key)
        name = entry.label or (chip if i == 0 else f"{chip}{i}")
        yield f"{chip}/{key}", name, entry


def _read_temperatures() -> dict[str, list[Any]]:
    try:
        return psutil.sensors_temperatures() or {}
    except AttributeError:
        # not available on this platform
        return {}


def _read_fans() -> dict[str, list[Any]]:
    try:
        return psutil.sensors_fans() or {}
    except AttributeError:
        return {}


def _psutil_sensors(
    hidden: Iterable[str] = (),
) -> Iterator[tuple[SensorDescriptor, float]]:
    hidden_set = set(hidden)
    for chip, entries in _read_temperatures().items():
        category = CHIP_CATEGORIES.get(chip, Category.OTHER)
        for sensor_id, name, entry in _chip_entries(chip, entries):
            listed = not (
                category is Category.OTHER
                and (chip in hidden_set or sensor_id in hidden_set)
            )
            descriptor = SensorDescriptor(
                id=sensor_id,
                name=name,
                category=category,
                max=_declared_max(entry),
                listed=listed,
            )
            yield descriptor, float(entry.current)
    for chip, entries in _read_fans().items():
        for sensor_id, name, entry in _chip_entries(f"fan:{chip}", entries):
            descriptor = SensorDescriptor(id=sensor_id, name=name, category=Category.FAN)
            yield descriptor, float(entry.current)


def read_psutil_values() -> dict[str, float]:
    """Current reading of every sensor psutil reports right now."""
    return {d.id: value for d, value in _psutil_sensors()}


# ── nvidia-smi ─────────────────────────────────────────────────────────────


def parse_nvidia_output(stdout: str) -> list[tuple[str, str, float]]:
    """Parse ``index, name, temperature`` CSV rows; malformed rows are skipped."""
    rows: list[tuple[str, str, float]] = []
    for line in stdout.strip().splitlines():
        parts = [p.strip() for p in line.split(",")]
        if len(parts) < 3:
            continue
        try:
            temp = float(parts[2])
        except ValueError:
            continue
        rows.append((f"nvidia/{parts[0]}", parts[1], temp))
    return rows


def _probe_nvidia() -> list[SensorDescriptor]:
    try:
        result = subprocess.run(
            NVIDIA_QUERY, capture_output=True, text=True, timeout=NVIDIA_TIMEOUT
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return []
    if result.returncode != 0:
        return []
    return [
        SensorDescriptor(id=sensor_id, name=f"GPU{sensor_id.split('/')[1]}", category=Category.GPU)
        for sensor_id, _, _ in parse_nvidia_output(result.stdout)
    ]


async def read_nvidia_values() -> dict[str, float]:
    """Query nvidia-smi without blocking the event loop."""
    try:
        proc = await asyncio.create_subprocess_exec(
            *NVIDIA_QUERY,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except FileNotFoundError:
        return {}
    try:
        stdout, _ = await asyncio.wait_for(proc.communicate(), NVIDIA_TIMEOUT)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        log.debug("nvidia-smi timed out")
        return {}
    if proc.returncode != 0:
        return {}
    return {sid: temp for sid, _, temp in parse_nvidia_output(stdout.decode())}


# ── Discovery ──────────────────────────────────────────────────────────────


async def _stream(
    ids: list[str],
    poll_interval: float,
    with_nvidia: bool,
) -> AsyncIterator[tuple[str, float]]:
    while True:
        readings = read_psutil_values()
        if with_nvidia:
            readings.update(await read_nvidia_values())
        for sensor_id in ids:
            if sensor_id in readings:
                yield sensor_id, readings[sensor_id]
        await asyncio.sleep(poll_interval)


def discover(
    poll_interval: float,
    *,
    hidden: Iterable[str] = (),
    use_nvidia_smi: bool = True,
) -> tuple[list[SensorDescriptor], AsyncIterator[tuple[str, float]]]:
    """Enumerate sensors once and return them with their update stream.

    Raises:
        SensorStartupError: If psutil fails or no sensor is found at all.
    """
    try:
        descriptors = [d for d, _ in _psutil_sensors(hidden)]
    except (OSError, psutil.Error) as e:
        raise SensorStartupError(f"cannot enumerate sensors: {e}") from e

    gpus = _probe_nvidia() if use_nvidia_smi else []
    descriptors.extend(gpus)
    if not descriptors:
        raise SensorStartupError("no hardware sensors found")

    ids = [d.id for d in descriptors]
    return descriptors, _stream(ids, poll_interval, bool(gpus))
