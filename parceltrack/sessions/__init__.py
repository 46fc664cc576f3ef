"""
Sessions - Users, credentials and login sessions
"""

from .store import (
    SessionStore,
    Session,
    User,
    UserPreferences,
    hash_password,
    verify_password,
)

__all__ = [
    "SessionStore",
    "Session",
    "User",
    "UserPreferences",
    "hash_password",
    "verify_password",
]
