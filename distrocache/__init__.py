"""HTTP key-value cache server with metrics, a client, a sample cached application and a load tester."""

__version__ = "1.0.0"
__all__ = [
    "cache",
    "cache_client",
    "cache_server",
    "dashboard",
    "loadtester",
    "metrics",
    "report",
    "sample_app",
]