"""
Core module - Configuration, database, Redis, Google clients and scheduling.
"""

from app.core.config import get_settings, settings
from app.core.database import Base, close_db, init_db
from app.core.redis import close_redis, init_redis, store_lock

__all__ = [
    # Config
    "settings",
    "get_settings",
    # Database
    "Base",
    "init_db",
    "close_db",
    # Redis
    "init_redis",
    "close_redis",
    "store_lock",
]
