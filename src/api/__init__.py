"""
FastAPI application for the TIAcher completion gateway.
"""

from api.app import app, get_app

__all__ = ["app", "get_app"]
