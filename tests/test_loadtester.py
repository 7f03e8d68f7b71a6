import json
import re

import pytest
import requests
import responses

from distrocache.loadtester import LoadTester, main, parse_duration
from distrocache.report import format_duration

CACHE = "http://cache.test"
APP = "http://app.test"


@pytest.fixture
def mock_http():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


@pytest.fixture
def load_tester():
    return LoadTester(CACHE, APP)


def _register_cache(rsps):
    pattern = re.compile(r"http://cache\.test/api/v1/cache/.*")
    rsps.add(responses.POST, pattern, json={"status": "success"})
    rsps.add(responses.GET, pattern, json={"key": "k", "value": 1})


def _register_app(rsps):
    rsps.add(
        responses.GET,
        re.compile(r"http://app\.test/api/users/\d+$"),
        json={"id": 1},
        headers={"X-Cache": "HIT"},
    )
    rsps.add(
        responses.GET,
        re.compile(r"http://app\.test/api/products.*"),
        json=[],
        headers={"X-Cache": "MISS"},
    )
    rsps.add(
        responses.POST,
        re.compile(r"http://app\.test/api/users/\d+/update"),
        json={"status": "success"},
    )


def test_parse_duration_compound():
    assert parse_duration("1m30s") == 90.0
    assert parse_duration("-1.5h") == -5400.0
    assert parse_duration("0") == 0.0


@pytest.mark.parametrize("seconds", [0.0, 0.0015, 2.5, 60.0, 3725.25])
def test_parse_duration_round_trips_formatting(seconds):
    assert parse_duration(format_duration(seconds)) == pytest.approx(seconds)


@pytest.mark.parametrize("text", ["", "abc", "5", "1x", "-", "1m s"])
def test_parse_duration_rejects_garbage(text):
    with pytest.raises(ValueError):
        parse_duration(text)


def test_set_cache_value_sends_payload(mock_http, load_tester):
    _register_cache(mock_http)
    result = load_tester.set_cache_value("alpha", {"n": 1}, 60, ["load-test"])
    assert result.request_type == "SET"
    assert result.status_code == 200
    assert result.error is None
    call = mock_http.calls[0]
    assert call.request.url == f"{CACHE}/api/v1/cache/alpha"
    assert json.loads(call.request.body) == {"value": {"n": 1}, "ttl": 60, "tags": ["load-test"]}


def test_get_cache_value_does_not_record_cache_header(mock_http, load_tester):
    mock_http.add(
        responses.GET, f"{CACHE}/api/v1/cache/alpha", json={}, headers={"X-Cache": "HIT"}
    )
    result = load_tester.get_cache_value("alpha")
    assert result.request_type == "GET"
    assert result.cache_status == ""


def test_get_user_records_cache_status(mock_http, load_tester):
    _register_app(mock_http)
    result = load_tester.get_user(3)
    assert result.request_type == "GET_USER"
    assert result.cache_status == "HIT"
    assert mock_http.calls[0].request.url == f"{APP}/api/users/3"


def test_get_products_puts_category_in_query(mock_http, load_tester):
    _register_app(mock_http)
    result = load_tester.get_products("Sports")
    assert result.request_type == "GET_PRODUCTS"
    assert result.cache_status == "MISS"
    assert mock_http.calls[0].request.url == f"{APP}/api/products?category=Sports"


def test_update_user_sends_new_name_and_email(mock_http, load_tester):
    _register_app(mock_http)
    result = load_tester.update_user(3)
    assert result.request_type == "UPDATE_USER"
    body = json.loads(mock_http.calls[0].request.body)
    assert body == {"name": "Updated User 3", "email": "updated3@example.com"}


def test_connection_failure_is_recorded_as_error(mock_http, load_tester):
    result = load_tester.get_cache_value("missing")
    assert isinstance(result.error, requests.ConnectionError)
    assert result.status_code == 0
    assert result.ok is False


def test_add_result_and_print_results_clear(capsys, mock_http, load_tester):
    _register_cache(mock_http)
    load_tester.add_result(load_tester.get_cache_value("a"))
    summary = load_tester.print_results("Direct Cache Test", 1.0, 1)
    assert summary.result_count == 1
    assert load_tester.results == []
    assert " Direct Cache Test Results" in capsys.readouterr().out


def test_print_results_without_results(capsys, load_tester):
    assert load_tester.print_results("Empty", 1.0, 0) is None
    assert "No results to display" in capsys.readouterr().out


def test_direct_cache_test_counts_sets_and_gets(mock_http, load_tester):
    _register_cache(mock_http)
    summary = load_tester.direct_cache_test(2, 4)
    assert summary.request_types == {"SET": 4, "GET": 4}
    assert summary.total_requests == 8
    assert summary.error_count == 0
    assert load_tester.results == []


def test_application_test_counts_user_and_product_reads(mock_http, load_tester):
    _register_app(mock_http)
    summary = load_tester.application_test(1, 5)
    assert summary.request_types == {"GET_USER": 5, "GET_PRODUCTS": 5}
    assert summary.cache_hits == 5
    assert summary.cache_misses == 5


def test_mixed_workload_counts_every_request(mock_http, load_tester):
    _register_cache(mock_http)
    _register_app(mock_http)
    summary = load_tester.mixed_workload_test(0.2, 2)
    assert summary.result_count >= 1
    assert summary.total_requests == summary.result_count
    assert set(summary.request_types) <= {"GET_USER", "GET_PRODUCTS", "UPDATE_USER", "SET"}


def test_zero_concurrency_is_rejected(load_tester):
    with pytest.raises(ValueError):
        load_tester.direct_cache_test(0, 10)


def test_main_rejects_unknown_test_type(capsys):
    with pytest.raises(SystemExit) as excinfo:
        main(["-test", "bogus"])
    assert "Invalid test type" in str(excinfo.value.code)
    assert "Test Type: bogus" in capsys.readouterr().out


def test_main_runs_direct_test(capsys, mock_http):
    _register_cache(mock_http)
    main(["-cache", CACHE, "-test", "direct", "-c", "1", "-r", "2"])
    out = capsys.readouterr().out
    assert f"Cache URL: {CACHE}" in out
    assert " Direct Cache Test Results" in out
    assert out.rstrip().endswith("Load testing completed!")
    assert len(mock_http.calls) == 4