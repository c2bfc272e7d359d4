"""
Users module - identity records keyed by email.
"""

from admissions.modules.users.models import User, UserType
from admissions.modules.users.repository import UserRepository, normalize_email

__all__ = ["User", "UserType", "UserRepository", "normalize_email"]
