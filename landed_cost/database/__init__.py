from landed_cost.database.base import Base, IdPrimaryKeyMixin, TimestampMixin
from landed_cost.database.engine import async_session, engine
from landed_cost.database.session import atomic, get_db

__all__ = [
    "Base",
    "IdPrimaryKeyMixin",
    "TimestampMixin",
    "async_session",
    "engine",
    "atomic",
    "get_db",
]
