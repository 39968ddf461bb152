from sqlalchemy import Column, Integer, String, Text, DateTime, Float, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship
from .base import Base, now_utc


class Doctor(Base):
    __tablename__ = 'doctors'
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    department = Column(String(255), nullable=False)
    title = Column(String(100), nullable=True)
    bio = Column(Text, nullable=True)
    profile_image_url = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    reviews = relationship(
        "Review",
        back_populates="doctor",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    ratings = relationship(
        "DoctorRating",
        back_populates="doctor",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index('ix_doctors_department', 'department'),
        Index('ix_doctors_created_at', 'created_at'),
    )


class Review(Base):
    """A single anonymous review; deliberately carries no reviewer reference."""
    __tablename__ = 'reviews'
    id = Column(Integer, primary_key=True, autoincrement=True)
    doctor_id = Column(Integer, ForeignKey('doctors.id', ondelete='CASCADE'), nullable=False)
    teaching_quality = Column(Integer, nullable=False)
    availability = Column(Integer, nullable=False)
    communication = Column(Integer, nullable=False)
    knowledge = Column(Integer, nullable=False)
    fairness = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=now_utc, nullable=False)

    doctor = relationship("Doctor", back_populates="reviews")

    __table_args__ = (
        CheckConstraint('teaching_quality BETWEEN 1 AND 5', name='ck_reviews_teaching_quality_range'),
        CheckConstraint('availability BETWEEN 1 AND 5', name='ck_reviews_availability_range'),
        CheckConstraint('communication BETWEEN 1 AND 5', name='ck_reviews_communication_range'),
        CheckConstraint('knowledge BETWEEN 1 AND 5', name='ck_reviews_knowledge_range'),
        CheckConstraint('fairness BETWEEN 1 AND 5', name='ck_reviews_fairness_range'),
        Index('ix_reviews_doctor_id_created_at', 'doctor_id', 'created_at'),
    )


class DoctorRating(Base):
    """Denormalized per-doctor aggregate, rewritten whenever a review is added or removed."""
    __tablename__ = 'doctor_ratings'
    id = Column(Integer, primary_key=True, autoincrement=True)
    doctor_id = Column(Integer, ForeignKey('doctors.id', ondelete='CASCADE'), nullable=False, unique=True)
    avg_teaching_quality = Column(Float, nullable=False, default=0.0)
    avg_availability = Column(Float, nullable=False, default=0.0)
    avg_communication = Column(Float, nullable=False, default=0.0)
    avg_knowledge = Column(Float, nullable=False, default=0.0)
    avg_fairness = Column(Float, nullable=False, default=0.0)
    overall_rating = Column(Float, nullable=False, default=0.0)
    total_reviews = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc, nullable=False)

    doctor = relationship("Doctor", back_populates="ratings")
