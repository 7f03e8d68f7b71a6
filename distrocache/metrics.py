"""Thread-safe metric primitives rendered in the Prometheus text exposition format."""

from __future__ import annotations

import math
import threading
from bisect import bisect_left
from collections.abc import Iterable
from typing import Union

DEFAULT_BUCKETS: tuple[float, ...] = (
    0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0,
)


def _format_value(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if float(value).is_integer() and abs(value) < 1e15:
        return str(int(value))
    return repr(float(value))


def _header(name: str, help_text: str, kind: str) -> list[str]:
    return [f"# HELP {name} {help_text}", f"# TYPE {name} {kind}"]


def _check_name(name: str) -> None:
    if not name:
        raise ValueError("metric name must not be empty")


class Counter:
    """A monotonically increasing value."""

    def __init__(self, name: str, help: str = "") -> None:
        _check_name(name)
        self.name = name
        self.help = help
        self._value = 0.0
        self._lock = threading.Lock()

    @property
    def value(self) -> float:
        with self._lock:
            return self._value

    def inc(self, amount: float = 1.0) -> None:
        if amount < 0:
            raise ValueError("counter cannot decrease")
        with self._lock:
            self._value += amount

    def render(self) -> str:
        lines = _header(self.name, self.help, "counter")
        lines.append(f"{self.name} {_format_value(self.value)}")
        return "\n".join(lines) + "\n"


class Gauge:
    """A value that can go up and down."""

    def __init__(self, name: str, help: str = "") -> None:
        _check_name(name)
        self.name = name
        self.help = help
        self._value = 0.0
        self._lock = threading.Lock()

    @property
    def value(self) -> float:
        with self._lock:
            return self._value

    def set(self, value: float) -> None:
        with self._lock:
            self._value = float(value)

    def render(self) -> str:
        lines = _header(self.name, self.help, "gauge")
        lines.append(f"{self.name} {_format_value(self.value)}")
        return "\n".join(lines) + "\n"


class Histogram:
    """Counts observations into cumulative buckets."""

    def __init__(
        self, name: str, help: str = "", buckets: Iterable[float] = DEFAULT_BUCKETS
    ) -> None:
        _check_name(name)
        bounds = sorted(float(b) for b in buckets if not math.isinf(b))
        if len(set(bounds)) != len(bounds):
            raise ValueError("histogram buckets must be unique")
        self.name = name
        self.help = help
        self.buckets: tuple[float, ...] = tuple(bounds)
        self._counts = [0] * (len(bounds) + 1)
        self._sum = 0.0
        self._lock = threading.Lock()

    @property
    def count(self) -> int:
        with self._lock:
            return sum(self._counts)

    @property
    def sum(self) -> float:
        with self._lock:
            return self._sum

    def observe(self, value: float) -> None:
        with self._lock:
            self._counts[bisect_left(self.buckets, value)] += 1
            self._sum += value

    def render(self) -> str:
        with self._lock:
            counts = list(self._counts)
            total_sum = self._sum
        lines = _header(self.name, self.help, "histogram")
        running = 0
        for bound, count in zip(self.buckets, counts):
            running += count
            lines.append(f'{self.name}_bucket{{le="{_format_value(bound)}"}} {running}')
        running += counts[-1]
        lines.append(f'{self.name}_bucket{{le="+Inf"}} {running}')
        lines.append(f"{self.name}_sum {_format_value(total_sum)}")
        lines.append(f"{self.name}_count {running}")
        return "\n".join(lines) + "\n"


Metric = Union[Counter, Gauge, Histogram]


class Registry:
    """An ordered collection of uniquely named metrics."""

    def __init__(self) -> None:
        self._metrics: dict[str, Metric] = {}
        self._lock = threading.Lock()

    def register(self, *args: Metric) -> None:
        with self._lock:
            names = [metric.name for metric in args]
            for name in names:
                if name in self._metrics or names.count(name) > 1:
                    raise ValueError(f"duplicate metric name: {name}")
            for metric in args:
                self._metrics[metric.name] = metric

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._metrics

    def render(self) -> str:
        with self._lock:
            metrics = list(self._metrics.values())
        return "".join(metric.render() for metric in metrics)