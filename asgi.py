"""
asgi.py -- ASGI entry point for Budget Tracker.

Run with:  uvicorn asgi:app --port 5001
"""

from api.main import app

__all__ = ["app"]
