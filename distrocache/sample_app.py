"""Sample web application that caches database reads in the cache server."""

from __future__ import annotations

import argparse
import json
import re
import sqlite3
import threading
import time
from dataclasses import asdict, dataclass
from typing import Any, Optional

import requests
from flask import Flask, Response, jsonify, request

from distrocache.cache_client import CacheClient, CacheMiss
from distrocache.dashboard import render_dashboard
from distrocache.report import format_duration

LOAD_TEST_ITERATIONS = 100
USER_TTL = 300
PRODUCTS_TTL = 600

_SCHEMA = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    email TEXT NOT NULL,
    created DATETIME DEFAULT CURRENT_TIMESTAMP
);
CREATE TABLE products (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    price REAL NOT NULL,
    category TEXT NOT NULL
);
"""

_USERS = (
    ("Alice Johnson", "alice@example.com"),
    ("Bob Smith", "bob@example.com"),
    ("Carol Davis", "carol@example.com"),
    ("David Wilson", "david@example.com"),
    ("Eva Brown", "eva@example.com"),
)

_PRODUCTS = (
    ("Laptop Pro", 1299.99, "Electronics"),
    ("Wireless Headphones", 199.99, "Electronics"),
    ("Coffee Maker", 89.99, "Appliances"),
    ("Running Shoes", 129.99, "Sports"),
    ("Smartphone", 699.99, "Electronics"),
    ("Desk Chair", 299.99, "Furniture"),
    ("Water Bottle", 24.99, "Sports"),
    ("Book: Go Programming", 39.99, "Books"),
)

_USER_QUERY = (
    "SELECT id, name, email, strftime('%Y-%m-%dT%H:%M:%SZ', created) "
    "FROM users WHERE id = ?"
)
_ALL_PRODUCTS = "SELECT id, name, price, category FROM products ORDER BY name"
_PRODUCTS_BY_CATEGORY = (
    "SELECT id, name, price, category FROM products WHERE category = ? ORDER BY name"
)
_CACHE_ERRORS = (CacheMiss, requests.RequestException, ValueError)


@dataclass
class User:
    id: int
    name: str
    email: str
    created: str


@dataclass
class Product:
    id: int
    name: str
    price: float
    category: str


def create_database() -> sqlite3.Connection:
    """Open an in-memory database holding the sample users and products."""
    db = sqlite3.connect(":memory:", check_same_thread=False)
    with db:
        db.executescript(_SCHEMA)
        db.executemany("INSERT INTO users (name, email) VALUES (?, ?)", _USERS)
        db.executemany(
            "INSERT INTO products (name, price, category) VALUES (?, ?, ?)", _PRODUCTS
        )
    return db


def _error(message: str, status: int) -> Response:
    return Response(message + "\n", status=status, mimetype="text/plain")


def _atoi(text: str) -> int:
    return int(text) if re.fullmatch(r"[+-]?[0-9]+", text) else 0


def _parse_update(body: bytes) -> tuple[str, str]:
    payload, _ = json.JSONDecoder().raw_decode(body.decode("utf-8").lstrip())
    if payload is None:
        return "", ""
    if not isinstance(payload, dict):
        raise ValueError("request body must be an object")
    fields = []
    for name in ("name", "email"):
        value = payload.get(name)
        if value is None:
            value = ""
        elif not isinstance(value, str):
            raise ValueError(f"{name} must be a string")
        fields.append(value)
    return fields[0], fields[1]


def _cached_response(payload: Any, status: str, start: float) -> Response:
    response = jsonify(payload)
    response.headers["X-Cache"] = status
    response.headers["X-Response-Time"] = format_duration(time.perf_counter() - start)
    return response


def create_app(
    db: sqlite3.Connection,
    cache: CacheClient,
    self_url: str = "http://localhost:3000",
) -> Flask:
    """Build the sample application over ``db``, caching through ``cache``."""
    app = Flask(__name__)
    app.json.sort_keys = False
    db_lock = threading.Lock()

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

    @app.get("/api/users/<user_id>")
    def get_user(user_id: str):
        cache_key = f"user:{user_id}"
        start = time.perf_counter()
        try:
            return _cached_response(cache.get(cache_key), "HIT", start)
        except _CACHE_ERRORS:
            pass

        try:
            with db_lock:
                row = db.execute(_USER_QUERY, (user_id,)).fetchone()
        except sqlite3.Error as exc:
            return _error(str(exc), 500)
        if row is None:
            return _error("User not found", 404)
        user = User(*row)

        try:
            cache.set(cache_key, asdict(user), USER_TTL, ["users", f"user:{user.id}"])
        except requests.RequestException:
            pass
        return _cached_response(asdict(user), "MISS", start)

    @app.get("/api/products")
    def get_products():
        category = request.args.get("category") or "all"
        cache_key = f"products:category:{category}"
        start = time.perf_counter()
        try:
            return _cached_response(cache.get(cache_key), "HIT", start)
        except _CACHE_ERRORS:
            pass

        try:
            with db_lock:
                if category == "all":
                    rows = db.execute(_ALL_PRODUCTS).fetchall()
                else:
                    rows = db.execute(_PRODUCTS_BY_CATEGORY, (category,)).fetchall()
        except sqlite3.Error as exc:
            return _error(str(exc), 500)
        products = [asdict(Product(*row)) for row in rows] or None

        try:
            cache.set(cache_key, products, PRODUCTS_TTL, ["products", f"category:{category}"])
        except requests.RequestException:
            pass
        return _cached_response(products, "MISS", start)

    @app.post("/api/users/<user_id>/update")
    def update_user(user_id: str):
        try:
            name, email = _parse_update(request.get_data())
        except ValueError:
            return _error("Invalid JSON", 400)
        try:
            with db_lock, db:
                db.execute(
                    "UPDATE users SET name = ?, email = ? WHERE id = ?",
                    (name, email, user_id),
                )
        except sqlite3.Error as exc:
            return _error(str(exc), 500)
        try:
            cache.invalidate_tag(f"user:{_atoi(user_id)}")
        except requests.RequestException:
            pass
        return jsonify({"status": "success"})

    @app.get("/api/load-test")
    def load_test():
        results = []
        for i in range(LOAD_TEST_ITERATIONS):
            user_id = i % 5 + 1
            start = time.perf_counter()
            try:
                response = requests.get(f"{self_url}/api/users/{user_id}", timeout=10)
            except requests.RequestException:
                continue
            duration = time.perf_counter() - start
            with response:
                cache_status = response.headers.get("X-Cache", "")
            results.append(
                {
                    "iteration": i + 1,
                    "user_id": user_id,
                    "duration_ms": int(duration * 1000),
                    "cache_status": cache_status,
                }
            )
        return jsonify({"total_requests": LOAD_TEST_ITERATIONS, "results": results})

    @app.get("/")
    @app.get("/benchmark")
    def benchmark():
        return Response(render_dashboard(cache.base_url), mimetype="text/html")

    return app


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Run the sample cached web application.")
    parser.add_argument("--port", type=int, default=3000)
    parser.add_argument("--cache-url", default="http://localhost:8080")
    args = parser.parse_args(argv)

    base = f"http://localhost:{args.port}"
    db = create_database()
    app = create_app(db, CacheClient(args.cache_url), base)

    print(f"Sample Web Application starting on port {args.port}")
    print(f"Benchmark Dashboard: {base}/benchmark")
    print("API Examples:")
    print(f"   GET  {base}/api/users/1")
    print(f"   GET  {base}/api/products?category=Electronics")
    print(f"   POST {base}/api/users/1/update")

    try:
        app.run(host="0.0.0.0", port=args.port, threaded=True)
    finally:
        db.close()