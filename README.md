# distrocache

An HTTP key-value cache server with time-to-live expiry, least-recently-used
eviction and tag-based invalidation, together with a sample web application
that caches its database queries in it and a load tester for the two.

## Installation

```
pip install .
```

For the tests:

```
pip install ".[test]"
pytest
```

## The cache server

```
distrocache-server [--port 8080] [--node-id node-1]
```

The server keeps at most 10,000 items; when it is full, storing a new item
first evicts the least recently accessed one. An item stored without a TTL
(or with `ttl` 0) gets the default of five minutes. A background thread
removes expired items once a minute, and an expired item is also dropped when
it is read.

| Method        | Path                             | Purpose                              |
|---------------|----------------------------------|--------------------------------------|
| GET           | `/api/v1/cache/{key}`            | Fetch an item (404 if missing or expired) |
| POST, PUT     | `/api/v1/cache/{key}`            | Store `{"value": ..., "ttl": seconds, "tags": [...]}` (400 on bad JSON) |
| DELETE        | `/api/v1/cache/{key}`            | Remove an item (404 if missing)      |
| POST          | `/api/v1/invalidate/tag/{tag}`   | Remove every item carrying a tag; returns `deleted` |
| GET           | `/api/v1/stats`                  | `total_items`, `total_tags`, `node_id`, `uptime` |
| GET           | `/api/v1/health`                 | `status`, `version`, `node_id`       |
| GET           | `/metrics`                       | Metrics in the Prometheus text exposition format |

A fetched item is returned as JSON with `key`, `value`, `ttl` (in
nanoseconds), `created_at` and `accessed_at` (RFC 3339, UTC),
`access_count`, and `tags` when it has any. Every response carries permissive
CORS headers, and `OPTIONS` requests are answered with 200.

The metrics cover hits, misses, sets, deletes, evictions, the number of items
and a histogram of access times.

### In-process use

```python
from distrocache.cache import CacheConfig, DistroCache

cache = DistroCache(CacheConfig(max_size=1000))
cache.set("user:1", {"name": "Alice"}, 300, ["users"])
item = cache.get("user:1")          # CacheItem, or None on a miss
print(item.value, item.access_count)
cache.invalidate_by_tag("users")    # number of items removed
```

`DistroCache` also offers `delete`, `cleanup`, `get_stats`, `hash_key` and
`should_own_key`. Used as a context manager it runs the periodic cleanup
thread (`start_cleanup` / `stop_cleanup`). `distrocache.cache_server.create_app`
builds the Flask application for a given cache, and
`distrocache.metrics` provides the `Counter`, `Gauge`, `Histogram` and
`Registry` types it reports with.

`distrocache.cache_client.CacheClient` talks to a running server: `get`
returns the stored value or raises `CacheMiss`, `set` stores a value with a
TTL and tags, and `invalidate_tag` drops a tag's items.

## The sample application

```
distrocache-sample-app [--port 3000] [--cache-url http://localhost:8080]
```

It serves from an in-memory SQLite database of five users and eight
products, and caches its reads in the cache server:

- `GET /api/users/{id}`: a user, with an `X-Cache: HIT` or `MISS` header and an `X-Response-Time` header (cached for 5 minutes)
- `GET /api/products?category=Electronics`: products by category, `all` by default (cached for 10 minutes)
- `POST /api/users/{id}/update`: change a user's name and email and invalidate its cache entry
- `GET /api/load-test`: a hundred user requests against itself
- `GET /` and `GET /benchmark`: a dashboard page for trying the above

If the cache server cannot be reached, the application still answers from
the database.

## The load tester

```
distrocache-loadtest -test all -c 10 -r 1000 -d 60s
```

Options:

- `-cache URL`: cache server (default `http://localhost:8080`)
- `-app URL`: sample application (default `http://localhost:3000`)
- `-test TYPE`: `direct`, `app`, `mixed` or `all` (default `mixed`)
- `-c N`: concurrent workers (default 10)
- `-r N`: requests for the direct and application tests (default 1000)
- `-d DURATION`: length of the mixed workload, such as `30s`, `250ms` or `1m30s` (default `60s`)

Each test prints throughput, success and error rates, the cache hit rate,
minimum, maximum, average and percentile response times, and the spread of
status codes and request types. The same reporting is available from
`distrocache.report` (`summarize`, `format_summary`).

## What it does not do

- Each server is a single, independent node. `should_own_key` computes a
  key's owner from its hash, and `CacheConfig` has a `replication_factor`,
  but no requests are routed or replicated between nodes.
- Nothing is persisted: the cache and the sample application's database live
  in memory and are lost when the process stops.
- The `distrocache_memory_bytes` gauge is exported but never updated.