import uuid
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID, JSONB
from .base import Base, now_utc


class ActivityLog(Base):
    __tablename__ = 'activity_logs'
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey('users.id', ondelete='SET NULL'), nullable=True)
    # Denormalized so entries stay readable after the user is deleted
    username = Column(String(254), nullable=True)
    role = Column(String(20), nullable=True)
    action = Column(Text, nullable=False)
    type = Column(String(50), nullable=False)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(Text, nullable=True)
    # Use a non-reserved Python attribute name while keeping DB column name 'metadata'
    metadata_json = Column('metadata', JSONB, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    __table_args__ = (
        Index('ix_activity_logs_type_created_at', 'type', 'created_at'),
        Index('ix_activity_logs_user_id_created_at', 'user_id', 'created_at'),
        Index('ix_activity_logs_ip_address', 'ip_address'),
    )
