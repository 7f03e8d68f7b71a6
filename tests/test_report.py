import pytest

from distrocache.report import (
    RequestResult,
    format_duration,
    format_summary,
    summarize,
)


def _sample():
    return [
        RequestResult("SET", 0.3, status_code=200),
        RequestResult("GET", 0.1, status_code=200, cache_status="HIT"),
        RequestResult("GET", 0.2, error=ConnectionError("refused")),
        RequestResult("GET_USER", 0.25, status_code=200, cache_status="MISS"),
        RequestResult("GET_USER", 0.15, status_code=200, cache_status="HIT"),
    ]


def test_empty_results_give_no_summary():
    assert summarize([], 1.0, 0) is None
    assert "No results to display" in format_summary("Empty", None)


def test_success_and_error_partition_results():
    results = _sample()
    summary = summarize(results, 2.0, 10)
    assert summary.success_count + summary.error_count == len(results)
    assert summary.error_count == sum(1 for r in results if r.error is not None)
    assert summary.result_count == len(results)


def test_distributions_cover_every_result():
    results = _sample()
    summary = summarize(results, 2.0, 10)
    assert sum(summary.status_codes.values()) == len(results)
    assert sum(summary.request_types.values()) == len(results)
    assert set(summary.request_types) == {"SET", "GET", "GET_USER"}
    assert 0 in summary.status_codes


def test_cache_hits_and_misses():
    summary = summarize(_sample(), 2.0, 10)
    assert summary.cache_hits == 2
    assert summary.cache_misses == 1
    assert summary.cache_hit_rate == pytest.approx(200 / 3)


def test_no_cache_statuses_means_no_hit_rate():
    summary = summarize([RequestResult("SET", 0.1, status_code=200)], 1.0, 1)
    assert summary.cache_hit_rate is None
    assert "Cache Hit Rate" not in format_summary("Direct Cache Test", summary)


def test_min_max_and_average_are_ordered():
    results = _sample()
    summary = summarize(results, 2.0, 10)
    assert summary.min_duration == min(r.duration for r in results)
    assert summary.max_duration == max(r.duration for r in results)
    assert summary.min_duration <= summary.average_duration <= summary.max_duration


def test_single_result_percentiles_equal_its_duration():
    summary = summarize([RequestResult("GET", 0.042, status_code=200)], 1.0, 1)
    assert summary.p50 == summary.p95 == summary.p99 == 0.042


def test_percentiles_come_from_recorded_durations():
    results = [RequestResult("GET", (i % 7) / 100 + 0.001) for i in range(40)]
    summary = summarize(results, 1.0, 40)
    durations = {r.duration for r in results}
    assert {summary.p50, summary.p95, summary.p99} <= durations


def test_requests_per_second_relates_duration_and_count():
    summary = summarize(_sample(), 4.0, 10)
    assert summary.requests_per_second * 4.0 == pytest.approx(10)


def test_format_summary_layout():
    text = format_summary("Direct Cache Test", summarize(_sample(), 2.0, 10))
    lines = text.splitlines()
    assert lines[0] == ""
    assert lines[1] == " " + "=" * 60 + " "
    assert lines[2] == " Direct Cache Test Results"
    assert lines[3] == "=" * 60
    assert "Total Requests:    10" in lines
    assert any(line.startswith("Success Rate:") for line in lines)
    assert "Status Code Distribution:" in lines
    assert "Request Type Distribution:" in lines


def test_format_duration_pins():
    assert format_duration(0) == "0s"
    assert format_duration(0.0015) == "1.5ms"
    assert format_duration(60.0) == "1m0s"