"""
Proxy relay for the Distance Matrix API
"""

from .app import create_app

__all__ = ["create_app"]
