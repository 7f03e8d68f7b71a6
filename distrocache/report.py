"""Aggregation and text reporting of load-test request results."""

from __future__ import annotations

import math
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Optional

from distrocache.cache import _format_duration

_RULE = "=" * 60


@dataclass(frozen=True)
class RequestResult:
    """Outcome of one HTTP request. ``duration`` is in seconds."""

    request_type: str
    duration: float
    status_code: int = 0
    cache_status: str = ""
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class Summary:
    """Statistics over a batch of request results. Times are in seconds."""

    total_duration: float
    total_requests: int
    result_count: int
    success_count: int
    error_count: int
    cache_hits: int
    cache_misses: int
    min_duration: float
    max_duration: float
    average_duration: float
    p50: float
    p95: float
    p99: float
    status_codes: dict[int, int] = field(default_factory=dict)
    request_types: dict[str, int] = field(default_factory=dict)

    @property
    def requests_per_second(self) -> float:
        if self.total_duration > 0:
            return self.total_requests / self.total_duration
        return math.inf if self.total_requests else math.nan

    @property
    def success_rate(self) -> float:
        return self.success_count / self.result_count * 100

    @property
    def error_rate(self) -> float:
        return self.error_count / self.result_count * 100

    @property
    def cache_hit_rate(self) -> Optional[float]:
        """Percentage of HIT among HIT/MISS responses, or None if there were none."""
        seen = self.cache_hits + self.cache_misses
        if seen == 0:
            return None
        return self.cache_hits / seen * 100


def format_duration(seconds: float) -> str:
    """Render a duration the way the cache server renders its uptime, e.g. ``1m30s``."""
    return _format_duration(seconds)


def summarize(
    results: Sequence[RequestResult], total_duration: float, total_requests: int
) -> Optional[Summary]:
    """Compute statistics over ``results``; return None when there are none.

    Percentiles are taken by position in the order the results were recorded.
    """
    if not results:
        return None
    durations = [result.duration for result in results]
    count = len(durations)
    statuses = Counter(result.cache_status for result in results)
    successes = sum(1 for result in results if result.ok)
    return Summary(
        total_duration=total_duration,
        total_requests=total_requests,
        result_count=count,
        success_count=successes,
        error_count=count - successes,
        cache_hits=statuses["HIT"],
        cache_misses=statuses["MISS"],
        min_duration=min(durations),
        max_duration=max(durations),
        average_duration=sum(durations) / count,
        p50=durations[count * 50 // 100],
        p95=durations[count * 95 // 100],
        p99=durations[count * 99 // 100],
        status_codes=dict(Counter(result.status_code for result in results)),
        request_types=dict(Counter(result.request_type for result in results)),
    )


def format_summary(test_name: str, summary: Optional[Summary]) -> str:
    """Render the report printed after a load test."""
    lines = ["", f" {_RULE} ", f" {test_name} Results", _RULE]
    if summary is None:
        lines.append("No results to display")
        return "\n".join(lines) + "\n"

    count = summary.result_count
    lines += [
        f"Total Duration:    {format_duration(summary.total_duration)}",
        f"Total Requests:    {summary.total_requests}",
        f"Requests/Second:   {summary.requests_per_second:.2f}",
        f"Success Rate:      {summary.success_rate:.2f}% ({summary.success_count}/{count})",
        f"Error Rate:        {summary.error_rate:.2f}% ({summary.error_count}/{count})",
    ]
    hit_rate = summary.cache_hit_rate
    if hit_rate is not None:
        seen = summary.cache_hits + summary.cache_misses
        lines.append(f"Cache Hit Rate:    {hit_rate:.2f}% ({summary.cache_hits}/{seen})")

    lines += [
        "",
        "Response Times:",
        f"  Min:             {format_duration(summary.min_duration)}",
        f"  Max:             {format_duration(summary.max_duration)}",
        f"  Average:         {format_duration(summary.average_duration)}",
        f"  50th percentile: {format_duration(summary.p50)}",
        f"  95th percentile: {format_duration(summary.p95)}",
        f"  99th percentile: {format_duration(summary.p99)}",
        "",
        "Status Code Distribution:",
    ]
    lines += [
        f"  {code}: {n} ({n / count * 100:.1f}%)"
        for code, n in summary.status_codes.items()
    ]
    lines += ["", "Request Type Distribution:"]
    lines += [
        f"  {kind}: {n} ({n / count * 100:.1f}%)"
        for kind, n in summary.request_types.items()
    ]
    return "\n".join(lines) + "\n"