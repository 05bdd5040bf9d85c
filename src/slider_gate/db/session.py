"""Database engine and session helpers for the SQL durable tier."""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


def build_engine(url: str, *, timeout_seconds: float = 2.0, echo: bool = False) -> Engine:
    """Create an engine whose connections give up after `timeout_seconds`.

    SQLite and non-SQLite drivers spell the connect timeout differently.
    """
    if url.startswith("sqlite"):
        connect_args: dict[str, object] = {
            "check_same_thread": False,
            "timeout": timeout_seconds,
        }
    else:
        connect_args = {"connect_timeout": max(1, int(timeout_seconds))}
    return create_engine(url, pool_pre_ping=True, echo=echo, connect_args=connect_args)


def build_sessionmaker(engine: Engine) -> sessionmaker[Session]:
    """Return a session factory bound to `engine`."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


def create_tables(engine: Engine) -> None:
    """Create all tables registered on `Base`."""
    # Ensure model modules are imported so that metadata is populated.
    import slider_gate.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
