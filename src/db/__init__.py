"""Database utilities package."""

from .base import Base, get_engine, get_session_factory, get_store_lock

__all__ = ["Base", "get_engine", "get_session_factory", "get_store_lock"]
