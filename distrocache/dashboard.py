"""The benchmark dashboard page served by the sample application."""

from __future__ import annotations

import json

_MARKER = "__CACHE_URL__"

_STYLES: dict[str, dict[str, str]] = {
    "body": {
        "font-family": "Arial, sans-serif",
        "margin": "20px",
        "background": "#f5f5f5",
    },
    ".container": {"max-width": "1200px", "margin": "0 auto"},
    ".card": {
        "background": "white",
        "padding": "20px",
        "margin": "10px 0",
        "border-radius": "8px",
        "box-shadow": "0 2px 4px rgba(0,0,0,0.1)",
    },
    ".metrics": {
        "display": "grid",
        "grid-template-columns": "repeat(auto-fit, minmax(200px, 1fr))",
        "gap": "15px",
    },
    ".metric": {
        "text-align": "center",
        "padding": "15px",
        "background": "#f8f9fa",
        "border-radius": "6px",
    },
    ".metric h3": {"margin": "0", "color": "#333"},
    ".metric .value": {"font-size": "24px", "font-weight": "bold", "color": "#007bff"},
    ".btn": {
        "padding": "10px 20px",
        "margin": "5px",
        "background": "#007bff",
        "color": "white",
        "border": "none",
        "border-radius": "4px",
        "cursor": "pointer",
    },
    ".btn:hover": {"background": "#0056b3"},
    ".results": {"margin-top": "20px"},
    "#loadResults": {
        "background": "#f8f9fa",
        "padding": "15px",
        "border-radius": "6px",
        "overflow-x": "auto",
    },
    ".status-hit": {"color": "#28a745", "font-weight": "bold"},
    ".status-miss": {"color": "#dc3545", "font-weight": "bold"},
}

_BUTTONS = (
    ("testCacheHit", "Test Cache Hit"),
    ("testCacheMiss", "Test Cache Miss"),
    ("runLoadTest", "Run Load Test (100 requests)"),
    ("invalidateCache", "Invalidate User Cache"),
    ("showCacheStats", "Show Cache Stats"),
)

_METRICS = (
    ("hitRate", "Cache Hit Rate", "--"),
    ("avgTime", "Avg Response Time", "-- ms"),
    ("totalReqs", "Total Requests", "--"),
    ("cacheItems", "Cache Items", "--"),
)

_SCRIPT = """
const CACHE_URL = __CACHE_URL__;
const tally = { hits: 0, misses: 0, totalTime: 0 };
const el = id => document.getElementById(id);
const show = markup => { el('loadResults').innerHTML = markup; };
const isHit = status => status === 'HIT';

function refreshMetrics() {
  const count = tally.hits + tally.misses;
  el('hitRate').textContent = count ? (100 * tally.hits / count).toFixed(1) + '%' : '--';
  el('avgTime').textContent = (count ? (tally.totalTime / count).toFixed(1) : '--') + ' ms';
  el('totalReqs').textContent = count;
}

function count(status, ms) {
  if (isHit(status)) { tally.hits += 1; } else { tally.misses += 1; }
  tally.totalTime += ms;
  refreshMetrics();
}

async function fetchFirstUser() {
  const began = Date.now();
  const reply = await fetch('/api/users/1');
  return { ms: Date.now() - began, status: reply.headers.get('X-Cache') };
}

async function testCacheHit() {
  const { ms, status } = await fetchFirstUser();
  count(status, ms);
  show(`Single request completed: ${ms}ms (${status})`);
}

async function testCacheMiss() {
  await fetch('/api/users/1/update', {
    method: 'POST',
    headers: { 'Content-Type': 'application/json' },
    body: JSON.stringify({ name: 'Alice Updated', email: 'alice.updated@example.com' }),
  });
  const { ms, status } = await fetchFirstUser();
  count(status, ms);
  show(`Cache miss test completed: ${ms}ms (${status})`);
}

async function runLoadTest() {
  show('Running load test...');
  const data = await (await fetch('/api/load-test')).json();
  const hits = data.results.filter(r => isHit(r.cache_status)).length;
  const misses = data.results.length - hits;
  const elapsed = data.results.reduce((sum, r) => sum + r.duration_ms, 0);
  const rows = data.results.map(r => [
    '<tr style="border-bottom: 1px solid #ddd;">',
    `<td>${r.iteration}</td><td>${r.user_id}</td><td>${r.duration_ms}</td>`,
    `<td class="${isHit(r.cache_status) ? 'status-hit' : 'status-miss'}">${r.cache_status}</td>`,
    '</tr>',
  ].join('')).join('');
  const hitRate = (100 * hits / (hits + misses)).toFixed(1);
  const average = (elapsed / data.total_requests).toFixed(1);

  tally.hits += hits;
  tally.misses += misses;
  tally.totalTime += elapsed;
  refreshMetrics();

  show(
    `<h3>Load Test Results (${data.total_requests} requests)</h3>` +
    '<table style="width: 100%; border-collapse: collapse;">' +
    '<tr style="background: #e9ecef;"><th>Request</th><th>User ID</th>' +
    '<th>Duration (ms)</th><th>Cache Status</th></tr>' + rows + '</table>' +
    '<div style="margin-top: 15px; padding: 10px; background: #d4edda; border-radius: 4px;">' +
    `<strong>Summary:</strong> Hit Rate: ${hitRate}%, Avg Response Time: ${average}ms</div>`
  );
}

async function invalidateCache() {
  await fetch(`${CACHE_URL}/api/v1/invalidate/tag/users`, { method: 'POST' });
  show('User cache invalidated');
}

async function loadCacheStats() {
  return (await fetch(`${CACHE_URL}/api/v1/stats`)).json();
}

async function showCacheStats() {
  const stats = await loadCacheStats();
  show('<h3>Cache Server Statistics</h3><pre>' + JSON.stringify(stats, null, 2) + '</pre>');
  el('cacheItems').textContent = stats.total_items;
}

setInterval(async () => {
  try {
    el('cacheItems').textContent = (await loadCacheStats()).total_items;
  } catch (err) {
    console.log('Cache server not available');
  }
}, 30000);
"""


def _stylesheet() -> str:
    return "\n".join(
        selector + " { " + " ".join(f"{name}: {value};" for name, value in rules.items()) + " }"
        for selector, rules in _STYLES.items()
    )


def _buttons() -> str:
    return "\n".join(
        f'<button class="btn" onclick="{handler}()">{label}</button>' for handler, label in _BUTTONS
    )


def _metrics() -> str:
    return "\n".join(
        f'<div class="metric"><h3>{title}</h3><div class="value" id="{ident}">{initial}</div></div>'
        for ident, title, initial in _METRICS
    )


def _page() -> str:
    body = "\n".join(
        [
            '<div class="container">',
            "<h1>DistroCache Performance Dashboard</h1>",
            '<div class="card">',
            "<h2>Quick Tests</h2>",
            _buttons(),
            "</div>",
            '<div class="card">',
            "<h2>Live Metrics</h2>",
            '<div class="metrics" id="metrics">',
            _metrics(),
            "</div>",
            "</div>",
            '<div class="card results">',
            "<h2>Test Results</h2>",
            '<div id="loadResults">Click "Run Load Test" to see results...</div>',
            "</div>",
            "</div>",
        ]
    )
    return "\n".join(
        [
            "<!DOCTYPE html>",
            "<html>",
            "<head>",
            "<title>DistroCache Benchmark Dashboard</title>",
            "<style>",
            _stylesheet(),
            "</style>",
            "</head>",
            "<body>",
            body,
            "<script>",
            _SCRIPT.strip(),
            "</script>",
            "</body>",
            "</html>",
            "",
        ]
    )


def render_dashboard(cache_url: str = "http://localhost:8080") -> str:
    """Return the dashboard HTML, pointing its cache calls at ``cache_url``."""
    literal = json.dumps(cache_url).replace("</", "<\\/")
    return _page().replace(_MARKER, literal)