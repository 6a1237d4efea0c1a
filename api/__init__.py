"""
HTTP API for the bakery order engine.

This package provides a single FastAPI application exposing catalog,
ordering, admin order management and notification endpoints.
"""

from api.main import app

__all__ = ["app"]
