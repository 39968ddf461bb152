from sqlalchemy import Column, String, DateTime, Index
from sqlalchemy.dialects.postgresql import JSONB
from .base import Base


class UserSession(Base):
    """Server-side session body; the signed cookie only carries `sid`."""
    __tablename__ = 'sessions'
    sid = Column(String(128), primary_key=True)
    sess = Column(JSONB, nullable=False, default=dict)
    expire = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index('ix_session_expire', 'expire'),
    )
