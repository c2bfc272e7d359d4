"""
Core module - Configuration, database, security, and utilities.
"""

from admissions.core.config import get_settings, settings
from admissions.core.database import Base, close_db, get_db, init_db
from admissions.core.redis import close_redis, get_redis_client, init_redis
from admissions.core.security import (
    compute_hmac_sha256,
    constant_time_equals,
    decode_token,
)

__all__ = [
    # Config
    "settings",
    "get_settings",
    # Database
    "Base",
    "get_db",
    "init_db",
    "close_db",
    # Redis
    "get_redis_client",
    "init_redis",
    "close_redis",
    # Security
    "compute_hmac_sha256",
    "constant_time_equals",
    "decode_token",
]
