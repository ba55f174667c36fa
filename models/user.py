"""
User model - registered credential holder.
"""

from datetime import datetime
from sqlmodel import SQLModel, Field


class User(SQLModel, table=True):
    """A registered user. Never mutated after registration."""
    username: str = Field(primary_key=True, max_length=100)
    password_hash: str  # "pbkdf2_sha256$<iterations>$<salt>$<hash>"
    created_at: datetime = Field(default_factory=datetime.now)
