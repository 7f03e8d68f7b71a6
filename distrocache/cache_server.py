"""HTTP front end for a cache node."""

from __future__ import annotations

import argparse
import json
from dataclasses import dataclass, field
from typing import Any, Optional

from flask import Flask, Response, jsonify, request

from distrocache.cache import CacheConfig, DistroCache
from distrocache.metrics import Registry

VERSION = "1.0.0"
METRICS_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"


@dataclass
class _SetRequest:
    value: Any = None
    ttl: int = 0
    tags: list[str] = field(default_factory=list)


def _parse_set_request(body: bytes) -> _SetRequest:
    """Decode the first JSON value of ``body``; raise ValueError if unusable."""
    text = body.decode("utf-8")
    payload, _ = json.JSONDecoder().raw_decode(text.lstrip())
    if payload is None:
        return _SetRequest()
    if not isinstance(payload, dict):
        raise ValueError("request body must be an object")
    ttl = payload.get("ttl")
    if ttl is None:
        ttl = 0
    elif isinstance(ttl, bool) or not isinstance(ttl, int):
        raise ValueError("ttl must be an integer")
    tags = payload.get("tags")
    if tags is None:
        tags = []
    elif not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        raise ValueError("tags must be a list of strings")
    return _SetRequest(value=payload.get("value"), ttl=ttl, tags=tags)


def _error(message: str, status: int) -> Response:
    return Response(message + "\n", status=status, mimetype="text/plain")


def create_app(cache: DistroCache, registry: Optional[Registry] = None) -> Flask:
    """Build the Flask application serving ``cache``."""
    metrics_registry = registry if registry is not None else cache.registry
    app = Flask(__name__)

    @app.before_request
    def _preflight() -> Optional[Response]:
        if request.method == "OPTIONS":
            return Response(status=200)
        return None

    @app.after_request
    def _cors(response: Response) -> Response:
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, DELETE, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        return response

    @app.get("/api/v1/cache/<key>")
    def handle_get(key: str):
        item = cache.get(key)
        if item is None:
            return _error("Key not found", 404)
        return jsonify(item.to_dict())

    @app.route("/api/v1/cache/<key>", methods=["POST", "PUT"])
    def handle_set(key: str):
        try:
            req = _parse_set_request(request.get_data())
        except ValueError:
            return _error("Invalid JSON", 400)
        ttl = float(req.ttl) if req.ttl != 0 else cache.config.default_ttl
        cache.set(key, req.value, ttl, req.tags)
        return jsonify({"status": "success"})

    @app.delete("/api/v1/cache/<key>")
    def handle_delete(key: str):
        if not cache.delete(key):
            return _error("Key not found", 404)
        return jsonify({"status": "success"})

    @app.post("/api/v1/invalidate/tag/<tag>")
    def handle_invalidate_tag(tag: str):
        deleted = cache.invalidate_by_tag(tag)
        return jsonify({"status": "success", "deleted": deleted})

    @app.get("/api/v1/stats")
    def handle_stats():
        return jsonify(cache.get_stats())

    @app.get("/api/v1/health")
    def handle_health():
        return jsonify(
            {"status": "healthy", "version": VERSION, "node_id": cache.config.node_id}
        )

    @app.get("/metrics")
    def handle_metrics():
        return Response(metrics_registry.render(), content_type=METRICS_CONTENT_TYPE)

    return app


def main(argv: Optional[list[str]] = None) -> None:
    defaults = CacheConfig()
    parser = argparse.ArgumentParser(description="Run a cache server node.")
    parser.add_argument("--port", type=int, default=defaults.port)
    parser.add_argument("--node-id", default=defaults.node_id)
    args = parser.parse_args(argv)

    config = CacheConfig(port=args.port, node_id=args.node_id)
    cache = DistroCache(config)
    app = create_app(cache)

    print(f"DistroCache Server starting on port {config.port}")
    print(f"Metrics available at http://localhost:{config.port}/metrics")
    print(f"Health check at http://localhost:{config.port}/api/v1/health")

    cache.start_cleanup()
    try:
        app.run(host="0.0.0.0", port=config.port, threaded=True)
    finally:
        cache.stop_cleanup()