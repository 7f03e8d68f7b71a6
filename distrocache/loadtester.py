"""Concurrent load generator for the cache server and the sample application."""

from __future__ import annotations

import argparse
import re
import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Optional

import requests

from distrocache.report import RequestResult, Summary, format_duration, format_summary, summarize

_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_PART = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")

_APP_CATEGORIES = ("Electronics", "Sports", "Appliances", "Books")
_MIXED_CATEGORIES = ("Electronics", "Sports", "all")
_TEST_TYPES = ("direct", "app", "mixed", "all")


def parse_duration(text: str) -> float:
    """Parse a duration such as ``90s``, ``1m30s`` or ``250ms`` into seconds."""
    body = text
    sign = 1.0
    if body.startswith(("+", "-")):
        sign = -1.0 if body[0] == "-" else 1.0
        body = body[1:]
    if body == "0":
        return 0.0
    if not body:
        raise ValueError(f"invalid duration {text!r}")
    total = 0.0
    pos = 0
    while pos < len(body):
        match = _PART.match(body, pos)
        if match is None:
            raise ValueError(f"invalid duration {text!r}")
        total += float(match.group(1)) * _UNITS[match.group(2)]
        pos = match.end()
    return sign * total


class _Tally:
    def __init__(self) -> None:
        self._value = 0
        self._lock = threading.Lock()

    def increment(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


class LoadTester:
    """Drives requests against a cache server and an application and reports on them."""

    def __init__(
        self,
        cache_url: str,
        app_url: str,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
    ) -> None:
        self.cache_url = cache_url
        self.app_url = app_url
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.results: list[RequestResult] = []
        self._lock = threading.Lock()

    def _request(
        self,
        request_type: str,
        method: str,
        url: str,
        payload: Any = None,
        track_cache: bool = False,
    ) -> RequestResult:
        start = time.perf_counter()
        try:
            response = self.session.request(method, url, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            return RequestResult(request_type, time.perf_counter() - start, error=exc)
        duration = time.perf_counter() - start
        with response:
            cache_status = response.headers.get("X-Cache", "") if track_cache else ""
            return RequestResult(
                request_type,
                duration,
                status_code=response.status_code,
                cache_status=cache_status,
            )

    def set_cache_value(
        self, key: str, value: Any, ttl: int, tags: list[str]
    ) -> RequestResult:
        payload = {"value": value, "ttl": ttl, "tags": tags}
        return self._request("SET", "POST", f"{self.cache_url}/api/v1/cache/{key}", payload)

    def get_cache_value(self, key: str) -> RequestResult:
        return self._request("GET", "GET", f"{self.cache_url}/api/v1/cache/{key}")

    def get_user(self, user_id: int) -> RequestResult:
        return self._request(
            "GET_USER", "GET", f"{self.app_url}/api/users/{user_id}", track_cache=True
        )

    def get_products(self, category: str) -> RequestResult:
        return self._request(
            "GET_PRODUCTS",
            "GET",
            f"{self.app_url}/api/products?category={category}",
            track_cache=True,
        )

    def update_user(self, user_id: int) -> RequestResult:
        payload = {
            "name": f"Updated User {user_id}",
            "email": f"updated{user_id}@example.com",
        }
        return self._request(
            "UPDATE_USER", "POST", f"{self.app_url}/api/users/{user_id}/update", payload
        )

    def add_result(self, result: RequestResult) -> None:
        with self._lock:
            self.results.append(result)

    def print_results(
        self, test_name: str, total_duration: float, total_requests: int
    ) -> Optional[Summary]:
        """Print the report for the collected results, clear them and return the summary."""
        with self._lock:
            results, self.results = self.results, []
        summary = summarize(results, total_duration, total_requests)
        print(format_summary(test_name, summary), end="")
        return summary

    @staticmethod
    def _run_workers(concurrency: int, worker: Callable[[int], None]) -> None:
        with ThreadPoolExecutor(max_workers=concurrency) as pool:
            list(pool.map(worker, range(concurrency)))

    @staticmethod
    def _check_concurrency(concurrency: int) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")

    def direct_cache_test(self, concurrency: int, requests: int) -> Optional[Summary]:
        """Have each worker set then get its own keys on the cache server."""
        self._check_concurrency(concurrency)
        print(
            f"Running direct cache test: {concurrency} concurrent workers, "
            f"{requests} total requests"
        )
        per_worker = requests // concurrency
        expected = requests * 2
        completed = _Tally()

        def worker(worker_id: int) -> None:
            for j in range(per_worker):
                key = f"test:worker:{worker_id}:req:{j}"
                value = {
                    "worker_id": worker_id,
                    "request_id": j,
                    "timestamp": int(time.time()),
                    "data": f"Test data for worker {worker_id} request {j}",
                }
                tags = ["load-test", f"worker-{worker_id}"]
                self.add_result(self.set_cache_value(key, value, 60, tags))
                self.add_result(self.get_cache_value(key))
                done = completed.increment()
                if done % 100 == 0:
                    print(f"Completed: {done}/{expected} requests")

        start = time.perf_counter()
        self._run_workers(concurrency, worker)
        return self.print_results("Direct Cache Test", time.perf_counter() - start, expected)

    def application_test(self, concurrency: int, requests: int) -> Optional[Summary]:
        """Have each worker read users and product listings through the application."""
        self._check_concurrency(concurrency)
        print(
            f"Running application test: {concurrency} concurrent workers, "
            f"{requests} total requests"
        )
        per_worker = requests // concurrency
        expected = requests * 2
        completed = _Tally()

        def worker(worker_id: int) -> None:
            for j in range(per_worker):
                self.add_result(self.get_user(j % 5 + 1))
                category = _APP_CATEGORIES[j % len(_APP_CATEGORIES)]
                self.add_result(self.get_products(category))
                done = completed.increment()
                if done % 50 == 0:
                    print(f"Completed: {done}/{expected} requests")

        start = time.perf_counter()
        self._run_workers(concurrency, worker)
        return self.print_results("Application Test", time.perf_counter() - start, expected)

    def mixed_workload_test(self, duration: float, concurrency: int) -> Optional[Summary]:
        """Run a weighted mix of reads, updates and cache writes for ``duration`` seconds."""
        self._check_concurrency(concurrency)
        print(f"Running mixed workload test: {concurrency} workers for {format_duration(duration)}")
        total = _Tally()
        start = time.perf_counter()
        deadline = time.monotonic() + duration

        def worker(worker_id: int) -> None:
            count = 0
            while time.monotonic() < deadline:
                slot = count % 10
                if slot < 5:
                    result = self.get_user(count % 5 + 1)
                elif slot < 8:
                    category = _MIXED_CATEGORIES[count % len(_MIXED_CATEGORIES)]
                    result = self.get_products(category)
                elif slot == 8:
                    result = self.update_user(count % 5 + 1)
                else:
                    key = f"mixed:worker:{worker_id}:req:{count}"
                    value = {"type": "mixed_workload", "worker": worker_id, "request": count}
                    result = self.set_cache_value(key, value, 30, ["mixed-test"])
                self.add_result(result)
                count += 1
                total.increment()
                time.sleep(0.01)

        self._run_workers(concurrency, worker)
        return self.print_results(
            "Mixed Workload Test", time.perf_counter() - start, total.value
        )


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Load test the cache server and sample app.")
    parser.add_argument("-cache", "--cache", default="http://localhost:8080", help="Cache server URL")
    parser.add_argument("-app", "--app", default="http://localhost:3000", help="Application server URL")
    parser.add_argument(
        "-test", "--test", default="mixed", help="Test type: direct, app, mixed, all"
    )
    parser.add_argument(
        "-c", dest="concurrency", type=int, default=10, help="Number of concurrent workers"
    )
    parser.add_argument(
        "-r", dest="requests", type=int, default=1000,
        help="Number of requests for direct/app tests",
    )
    parser.add_argument(
        "-d", dest="duration", type=parse_duration, default=60.0,
        help="Duration for mixed workload test",
    )
    args = parser.parse_args(argv)

    print("DistroCache Load Tester")
    print("=" * 60)
    print(f"Cache URL: {args.cache}")
    print(f"App URL: {args.app}")
    print(f"Test Type: {args.test}")
    print(f"Concurrency: {args.concurrency}")
    print(f"Requests: {args.requests}")
    print(f"Duration: {format_duration(args.duration)}")
    print()

    if args.test not in _TEST_TYPES:
        raise SystemExit("Invalid test type. Use: direct, app, mixed, or all")

    tester = LoadTester(args.cache, args.app)
    if args.test == "direct":
        tester.direct_cache_test(args.concurrency, args.requests)
    elif args.test == "app":
        tester.application_test(args.concurrency, args.requests)
    elif args.test == "mixed":
        tester.mixed_workload_test(args.duration, args.concurrency)
    else:
        print("Running all test types...")
        tester.direct_cache_test(args.concurrency, args.requests // 2)
        time.sleep(2)
        tester.application_test(args.concurrency, args.requests // 2)
        time.sleep(2)
        tester.mixed_workload_test(args.duration / 2, args.concurrency)

    print("\nLoad testing completed!")