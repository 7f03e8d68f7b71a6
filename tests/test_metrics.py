import pytest

from distrocache.metrics import DEFAULT_BUCKETS, Counter, Gauge, Histogram, Registry


def test_counter_increments_and_renders():
    counter = Counter("requests_total", "Total requests")
    counter.inc()
    counter.inc(2)
    assert counter.value == 3
    text = counter.render()
    assert "# HELP requests_total Total requests" in text
    assert "# TYPE requests_total counter" in text
    assert text.endswith("requests_total 3\n")


def test_counter_rejects_negative_increment():
    counter = Counter("c")
    with pytest.raises(ValueError):
        counter.inc(-1)
    assert counter.value == 0


def test_counter_fractional_value_rendered():
    counter = Counter("c")
    counter.inc(0.5)
    assert counter.render().splitlines()[-1] == "c 0.5"


def test_gauge_set_overwrites():
    gauge = Gauge("items", "Items")
    gauge.set(10)
    gauge.set(4)
    assert gauge.value == 4
    assert "# TYPE items gauge" in gauge.render()
    assert gauge.render().splitlines()[-1] == "items 4"


def test_histogram_buckets_are_cumulative():
    hist = Histogram("latency", "Latency", buckets=[1, 5])
    for value in (0.5, 1, 3, 100):
        hist.observe(value)
    lines = hist.render().splitlines()
    assert 'latency_bucket{le="1"} 2' in lines
    assert 'latency_bucket{le="5"} 3' in lines
    assert 'latency_bucket{le="+Inf"} 4' in lines
    assert "latency_count 4" in lines
    assert hist.count == 4
    assert hist.sum == pytest.approx(104.5)


def test_histogram_default_buckets():
    hist = Histogram("h")
    assert hist.buckets == DEFAULT_BUCKETS
    assert hist.render().count("h_bucket") == len(DEFAULT_BUCKETS) + 1


def test_empty_name_rejected():
    with pytest.raises(ValueError):
        Gauge("")


def test_registry_renders_in_registration_order():
    registry = Registry()
    first = Counter("first")
    second = Gauge("second")
    registry.register(first, second)
    text = registry.render()
    assert text.index("# TYPE first counter") < text.index("# TYPE second gauge")
    assert "first" in registry


def test_registry_rejects_duplicates():
    registry = Registry()
    registry.register(Counter("dup"))
    with pytest.raises(ValueError):
        registry.register(Gauge("dup"))
    with pytest.raises(ValueError):
        registry.register(Counter("a"), Counter("a"))
    assert "a" not in registry