"""Category bucketing, chart scaling and the fixed dashboard layout.

Pure functions only: everything here works on a telemetry snapshot and a
terminal size and produces plain data for the terminal to paint.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field

from sensorbars.telemetry import Category, SensorDescriptor

Snapshot = list[tuple[SensorDescriptor, float]]

# Used when no sensor in the category declares a usable max.
DEFAULT_CEILINGS: dict[Category, int] = {
    Category.CPU: 80,
    Category.GPU: 90,
    Category.HDD: 60,
    Category.FAN: 4000,
    Category.OTHER: 80,
}


@dataclass(frozen=True)
class ChartStyle:
    title: str
    color: str


CHART_STYLES: dict[Category, ChartStyle] = {
    Category.CPU: ChartStyle("CPUs", "green"),
    Category.GPU: ChartStyle("GPUs", "yellow"),
    Category.HDD: ChartStyle("HDDs", "cyan"),
    Category.FAN: ChartStyle("Fans", "magenta"),
    Category.OTHER: ChartStyle("Others", "white"),
}


# ── Geometry ───────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Geometry:
    """Terminal size in cells."""

    width: int
    height: int


@dataclass(frozen=True)
class Rect:
    x: int
    y: int
    width: int
    height: int


class Direction(enum.Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


def shrink(rect: Rect, margin: int) -> Rect:
    return Rect(
        rect.x + margin,
        rect.y + margin,
        max(0, rect.width - 2 * margin),
        max(0, rect.height - 2 * margin),
    )


def split(rect: Rect, direction: Direction, weights: list[int]) -> list[Rect]:
    """Cut *rect* into proportional chunks; the last chunk absorbs rounding."""
    total = rect.width if direction is Direction.HORIZONTAL else rect.height
    weight_sum = sum(weights)
    sizes = [total * w // weight_sum for w in weights[:-1]]
    sizes.append(total - sum(sizes))

    chunks: list[Rect] = []
    offset = 0
    for size in sizes:
        if direction is Direction.HORIZONTAL:
            chunks.append(Rect(rect.x + offset, rect.y, size, rect.height))
        else:
            chunks.append(Rect(rect.x, rect.y + offset, rect.width, size))
        offset += size
    return chunks


def layout(geometry: Geometry) -> dict[Category, Rect]:
    """Two rows (60/40): CPU, GPU, HDD on top; Fan and Other below."""
    area = shrink(Rect(0, 0, geometry.width, geometry.height), 1)
    top, bottom = split(area, Direction.VERTICAL, [60, 40])
    cpu, gpu, hdd = split(top, Direction.HORIZONTAL, [1, 1, 1])
    fan, other = split(bottom, Direction.HORIZONTAL, [1, 1])
    return {
        Category.CPU: cpu,
        Category.GPU: gpu,
        Category.HDD: hdd,
        Category.FAN: fan,
        Category.OTHER: other,
    }


# ── Bucketing ──────────────────────────────────────────────────────────────


@dataclass
class Bucket:
    data: list[tuple[str, int]] = field(default_factory=list)
    ceiling: int = 0


def _in_category(descriptor: SensorDescriptor, category: Category) -> bool:
    if descriptor.category is not category:
        return False
    if category is Category.OTHER:
        return descriptor.listed
    return True


def _display_value(value: float) -> int:
    if not math.isfinite(value) or value < 0:
        return 0
    return int(value)


def bucket(snapshot: Snapshot, category: Category) -> Bucket:
    """Chart data and scale ceiling for one category.

    The ceiling is the largest declared max in the category; when there is
    none (empty category, or every max is NaN) the category default is used.
    """
    data: list[tuple[str, int]] = []
    maxima: list[float] = []
    for descriptor, value in snapshot:
        if not _in_category(descriptor, category):
            continue
        data.append((descriptor.name, _display_value(value)))
        if math.isfinite(descriptor.max):
            maxima.append(descriptor.max)
    ceiling = int(max(maxima)) if maxima else DEFAULT_CEILINGS[category]
    return Bucket(data=data, ceiling=ceiling)


# ── Frame ──────────────────────────────────────────────────────────────────


@dataclass
class ChartPanel:
    """Everything the terminal needs to paint one bar chart."""

    category: Category
    title: str
    color: str
    rect: Rect
    data: list[tuple[str, int]]
    ceiling: int


def build_frame(snapshot: Snapshot, geometry: Geometry) -> list[ChartPanel]:
    """One chart per category, positioned for *geometry*."""
    panels: list[ChartPanel] = []
    for category, rect in layout(geometry).items():
        style = CHART_STYLES[category]
        b = bucket(snapshot, category)
        panels.append(
            ChartPanel(
                category=category,
                title=style.title,
                color=style.color,
                rect=rect,
                data=b.data,
                ceiling=b.ceiling,
            )
        )
    return panels
