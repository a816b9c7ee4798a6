"""ORM model for server-side sessions (one row per authenticated client binding)."""

from sqlalchemy import JSON, Column, DateTime, String
from sqlalchemy.dialects.postgresql import JSONB

from langualegacy.models.base import Base


class SessionRecord(Base):
    """
    Persisted session: sid is the HMAC of the client token, sess holds session data
    (including userId once authenticated), expire is the absolute expiry.
    """

    __tablename__ = "sessions"

    sid = Column(String(128), primary_key=True)
    sess = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False)
    expire = Column(DateTime(timezone=True), nullable=False, index=True)
