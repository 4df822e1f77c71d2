"""Constants shared by the web front-end and the worker."""

GREETING = "Hello from auro"

__all__ = ["GREETING"]
