import json

from distrocache.dashboard import render_dashboard


def test_page_is_html_document():
    page = render_dashboard()
    assert page.startswith("<!DOCTYPE html>")
    assert page.rstrip().endswith("</html>")


def test_default_cache_url_embedded():
    page = render_dashboard()
    assert json.dumps("http://localhost:8080") in page


def test_custom_cache_url_embedded():
    url = "http://cache.example.com:9000"
    page = render_dashboard(url)
    assert json.dumps(url) in page
    assert "__CACHE_URL__" not in page


def test_contains_controls():
    page = render_dashboard()
    for label in ("Test Cache Hit", "Run Load Test (100 requests)", "Show Cache Stats"):
        assert label in page
    assert "/api/load-test" in page


def test_percent_signs_not_doubled():
    assert "%%" not in render_dashboard()


def test_script_close_in_url_is_escaped():
    page = render_dashboard("http://x/</script><b>")
    assert page.count("</script>") == 1
    assert "<\\/script>" in page