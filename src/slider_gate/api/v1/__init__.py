# src/slider_gate/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import captcha_router, system_router

__all__ = [
    "captcha_router",
    "system_router",
]
