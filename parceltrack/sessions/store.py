"""
ParcelTrack SessionStore - User registration, credential check, session issuance

Usage:
    store = SessionStore()
    store.register_user("alice", "alice@example.com", "s3cret")
    session_id = store.login("alice", "s3cret")
    user = store.get_user(session_id)
    store.logout(session_id)

Passwords are stored as bcrypt hashes. The plaintext is never kept.
"""

import logging
import secrets
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

import bcrypt

from ..errors import AuthenticationError, DuplicateUserError, ValidationError
from ..shipments import ShipmentRecord, normalize_tag

logger = logging.getLogger(__name__)

# Bcrypt work factor
BCRYPT_ROUNDS = 12

# bcrypt only reads the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


def hash_password(password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password
        rounds: bcrypt work factor (4-31)

    Returns:
        Bcrypt hash string
    """
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a bcrypt hash. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError as e:
        logger.error(f"Password verification failed: {e}")
        return False


@dataclass
class UserPreferences:
    """Per-user preferences"""
    notifications_enabled: bool = True
    default_tags: List[str] = field(default_factory=list)

    def toggle_notifications(self) -> bool:
        self.notifications_enabled = not self.notifications_enabled
        return self.notifications_enabled

    def add_default_tag(self, tag: str) -> None:
        normalized = normalize_tag(tag)
        if normalized not in self.default_tags:
            self.default_tags.append(normalized)

    def remove_default_tag(self, tag: str) -> None:
        normalized = normalize_tag(tag)
        if normalized in self.default_tags:
            self.default_tags.remove(normalized)


@dataclass(eq=False)
class User:
    """A registered user and the shipments they own"""
    username: str
    email: str
    password_hash: str = field(repr=False)
    preferences: UserPreferences = field(default_factory=UserPreferences)
    shipments: List[ShipmentRecord] = field(default_factory=list, repr=False)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    def check_password(self, password: str) -> bool:
        return verify_password(password, self.password_hash)

    def add_shipment(self, record: ShipmentRecord) -> None:
        self.shipments.append(record)

    def find_shipment(self, tracking_number: str) -> Optional[ShipmentRecord]:
        for record in self.shipments:
            if record.tracking_number == tracking_number:
                return record
        return None


@dataclass
class Session:
    """An active login"""
    session_id: str
    username: str
    created_at: datetime
    expires_at: Optional[datetime] = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class SessionStore:
    """
    In-memory users and sessions.

    Args:
        session_ttl: Seconds a session stays valid. None means until logout.
        hash_rounds: bcrypt work factor for new password hashes
        clock: Returns "now"
    """

    def __init__(
        self,
        session_ttl: Optional[float] = None,
        hash_rounds: int = BCRYPT_ROUNDS,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._users: Dict[str, User] = {}
        self._sessions: Dict[str, Session] = {}
        self._session_ttl = timedelta(seconds=session_ttl) if session_ttl else None
        self._hash_rounds = hash_rounds
        self._clock = clock
        self._lock = threading.RLock()
        # Checked on unknown usernames too, so timing does not reveal which users exist
        self._dummy_hash = hash_password(secrets.token_urlsafe(16), hash_rounds)

    def register_user(self, username: str, email: str, password: str) -> User:
        """
        Register a new user.

        Raises:
            ValidationError: If username or password is empty, or the
                password is longer than MAX_PASSWORD_BYTES
            DuplicateUserError: If the username is taken
        """
        if not username or not username.strip():
            raise ValidationError("Username must not be empty")
        if not password:
            raise ValidationError("Password must not be empty")
        if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")

        with self._lock:
            if username in self._users:
                raise DuplicateUserError(f"Username already exists: {username}")
            user = User(
                username=username,
                email=email,
                password_hash=hash_password(password, self._hash_rounds),
            )
            self._users[username] = user

        logger.info(f"User registered: {username}")
        return user

    def login(self, username: str, password: str) -> str:
        """
        Check credentials and open a session.

        Returns:
            New session id

        Raises:
            AuthenticationError: If the username is unknown or the password is wrong
        """
        user = self._users.get(username)
        if user is None:
            verify_password(password, self._dummy_hash)
            logger.warning(f"Login failed for unknown user: {username}")
            raise AuthenticationError("Invalid username or password")
        if not user.check_password(password):
            logger.warning(f"Login failed for user: {username}")
            raise AuthenticationError("Invalid username or password")

        now = self._clock()
        session = Session(
            session_id=secrets.token_urlsafe(32),
            username=username,
            created_at=now,
            expires_at=now + self._session_ttl if self._session_ttl else None,
        )
        with self._lock:
            self._sessions[session.session_id] = session

        logger.info(f"User logged in: {username}")
        return session.session_id

    def logout(self, session_id: str) -> None:
        """End a session. Unknown ids are ignored."""
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session:
            logger.info(f"User logged out: {session.username}")

    def get_user(self, session_id: Optional[str]) -> Optional[User]:
        """Get the user for an active session, or None."""
        if not session_id:
            return None
        session = self._sessions.get(session_id)
        if session is None or session.is_expired(self._clock()):
            return None
        return self._users.get(session.username)

    def get_session(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def purge_expired(self) -> int:
        """Drop expired sessions. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [sid for sid, s in self._sessions.items() if s.is_expired(now)]
            for sid in expired:
                del self._sessions[sid]
        if expired:
            logger.info(f"Purged {len(expired)} expired sessions")
        return len(expired)

    def active_session_count(self) -> int:
        now = self._clock()
        return sum(1 for s in self._sessions.values() if not s.is_expired(now))
