"""
User Repository - data access layer for User model.
"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session

from db_engine import get_engine
from exceptions import StorageError, UserExistsError
from models import User

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for User records."""

    @staticmethod
    def get(username: str) -> Optional[User]:
        """Retrieve a user by username."""
        try:
            with Session(get_engine()) as session:
                return session.get(User, username)
        except SQLAlchemyError as e:
            logger.error(f"User lookup failed for {username}: {e}")
            raise StorageError("Storage failure") from e

    @staticmethod
    def add(username: str, password_hash: str) -> User:
        """
        Create a new user.

        Args:
            username: Unique username
            password_hash: Encoded password hash

        Returns:
            Created User object

        Raises:
            UserExistsError: username already taken
            StorageError: database failure
        """
        with Session(get_engine()) as session:
            user = User(username=username, password_hash=password_hash)
            session.add(user)
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise UserExistsError("Username already exists") from e
            except SQLAlchemyError as e:
                session.rollback()
                logger.error(f"User creation failed for {username}: {e}")
                raise StorageError("Storage failure") from e
            session.refresh(user)
            return user
