# src/slider_gate/models/challenge.py
"""Durable challenge rows."""

from sqlalchemy import Boolean, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from slider_gate.db.session import Base


class ChallengeRecord(Base):
    """Restart-surviving copy of an in-memory challenge.

    One row per challenge id; the in-memory tier stays authoritative while
    the process is running.
    """

    __tablename__ = "captcha_challenges"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    mode: Mapped[str] = mapped_column(String(16), nullable=False)
    target_x: Mapped[int] = mapped_column(Integer, nullable=False)
    target_y: Mapped[int] = mapped_column(Integer, nullable=False)
    target_slider_x: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[float] = mapped_column(Float, nullable=False, index=True)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    solved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    client_fingerprint: Mapped[str | None] = mapped_column(String(64), nullable=True)
