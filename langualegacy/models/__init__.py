"""SQLAlchemy ORM models."""

from langualegacy.models.base import Base
from langualegacy.models.session import SessionRecord
from langualegacy.models.user import User

__all__ = ["Base", "SessionRecord", "User"]
