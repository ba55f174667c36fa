"""
Account service for registration and login.
Credentials are stored as salted PBKDF2-SHA256 hashes; a successful login returns the
user's ledger snapshot for the dashboard.
"""

import hashlib
import hmac
import logging
import secrets
from typing import Optional, Union

from config import get_settings
from exceptions import AuthenticationError, LedgerError, ValidationError
from models import User
from repositories.ledger_repository import LedgerRepository
from repositories.user_repository import UserRepository
from services.common import LedgerSnapshot, Rejection
from services.trading import TradingService

logger = logging.getLogger(__name__)

HASH_ALGORITHM = "pbkdf2_sha256"
MAX_USERNAME_LENGTH = 100


def hash_password(password: str, iterations: Optional[int] = None) -> str:
    """
    Hash a password with a fresh random salt.

    Returns:
        Encoded string "pbkdf2_sha256$<iterations>$<salt hex>$<hash hex>"
    """
    if iterations is None:
        iterations = get_settings().password_hash_iterations
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), iterations)
    return f"{HASH_ALGORITHM}${iterations}${salt}${digest.hex()}"


def verify_password(password: str, encoded: str) -> bool:
    """Check a password against an encoded hash from hash_password()."""
    try:
        algorithm, iterations, salt, expected = encoded.split("$")
        iterations = int(iterations)
    except ValueError:
        logger.warning("Malformed password hash")
        return False
    if algorithm != HASH_ALGORITHM:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), iterations)
    return hmac.compare_digest(digest.hex(), expected)


class AccountService:
    """Service for user registration and login."""

    @staticmethod
    def register(username: str, password: str) -> Union[User, Rejection]:
        """
        Register a new user and provision their ledger.

        Args:
            username: Desired username (surrounding whitespace is ignored)
            password: Plain-text password

        Returns:
            Created User, or a Rejection (ValidationError, UserExistsError, StorageError)
        """
        settings = get_settings()
        username = (username or "").strip()
        password = (password or "").strip()

        try:
            if not username or not password:
                raise ValidationError("Username and password required")
            if len(username) < settings.min_username_length:
                raise ValidationError(
                    f"Username must be at least {settings.min_username_length} characters"
                )
            if len(username) > MAX_USERNAME_LENGTH:
                raise ValidationError(
                    f"Username must be at most {MAX_USERNAME_LENGTH} characters"
                )
            if len(password) < settings.min_password_length:
                raise ValidationError(
                    f"Password must be at least {settings.min_password_length} characters"
                )

            user = UserRepository.add(username, hash_password(password))
            LedgerRepository.ensure_user(username)
            logger.info(f"Registered user {username}")
            return user

        except LedgerError as e:
            logger.info(f"Registration rejected for {username!r}: {e}")
            return Rejection.from_error(e)

    @staticmethod
    def login(username: str, password: str) -> Union[LedgerSnapshot, Rejection]:
        """
        Verify credentials and return the user's ledger snapshot.
        Unknown users and wrong passwords get the same rejection.
        """
        username = (username or "").strip()
        password = (password or "").strip()

        try:
            if not username or not password:
                raise ValidationError("Username and password required")

            user = UserRepository.get(username)
            if user is None or not verify_password(password, user.password_hash):
                raise AuthenticationError("Invalid username or password")

        except LedgerError as e:
            logger.info(f"Login rejected for {username!r}: {e.kind}")
            return Rejection.from_error(e)

        logger.info(f"User {username} logged in")
        return TradingService.snapshot(username)
