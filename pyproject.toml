[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "distrocache"
version = "1.0.0"
description = "An HTTP key-value cache server with tag invalidation, a sample cached web application and a load tester"
requires-python = ">=3.10"
keywords = ["cache", "http", "key-value", "load-testing", "metrics", "flask"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: System :: Benchmark",
]
dependencies = [
    "flask",
    "requests",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[project.scripts]
distrocache-server = "distrocache.cache_server:main"
distrocache-loadtest = "distrocache.loadtester:main"
distrocache-sample-app = "distrocache.sample_app:main"

[tool.hatch.build.targets.wheel]
packages = ["distrocache"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
