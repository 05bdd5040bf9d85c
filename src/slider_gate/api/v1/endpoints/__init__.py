# src/slider_gate/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .captcha import router as captcha_router
from .system import router as system_router

__all__ = [
    "captcha_router",
    "system_router",
]
