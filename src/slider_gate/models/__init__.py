# src/slider_gate/models/__init__.py
"""SQLAlchemy models for the Slider Gate service."""

from .challenge import ChallengeRecord

__all__ = ["ChallengeRecord"]
