"""
HTTP routes for the analytics collector.
"""

from .api import create_api_router
from .pages import create_pages_router

__all__ = ["create_api_router", "create_pages_router"]
