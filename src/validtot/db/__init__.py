"""Database module."""

from validtot.db.session import close_db, get_session_factory, init_db

__all__ = ["get_session_factory", "init_db", "close_db"]
