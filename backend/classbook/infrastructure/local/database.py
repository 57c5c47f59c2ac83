"""
SQLite database configuration and ORM models.

This module defines the SQLAlchemy ORM models and database initialization.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    JSON,
)
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from classbook.core.config import get_settings
from classbook.utils.datetime_utils import now_utc, to_naive_utc


class Base(DeclarativeBase):
    """SQLAlchemy declarative base."""

    pass


def _utcnow() -> datetime:
    return to_naive_utc(now_utc())


# ===========================================
# ORM Models
# ===========================================


class MeetingORM(Base):
    """Meeting ORM model."""

    __tablename__ = "meetings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    section_id = Column(String(36), nullable=False, index=True)
    # ISO 8601 text keeps the UTC offset
    start_time = Column(String(40), nullable=False)
    end_time = Column(String(40), nullable=False)
    is_recurring = Column(Boolean, default=False)
    recurrence_rule = Column(String(500), nullable=True)
    exceptions = Column(JSON, nullable=True, default=list)  # ["2024-11-29", ...]
    room_id = Column(String(36), nullable=True, index=True)
    teacher_ids = Column(JSON, nullable=True, default=list)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)


class SectionORM(Base):
    """Section ORM model."""

    __tablename__ = "sections"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    name = Column(String(200), nullable=True)
    capacity = Column(Integer, nullable=False)
    room_id = Column(String(36), nullable=True)
    room_capacity = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)


class EnrollmentORM(Base):
    """Enrollment ORM model. Rows are never deleted."""

    __tablename__ = "enrollments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    section_id = Column(String(36), ForeignKey("sections.id"), nullable=False, index=True)
    student_id = Column(String(255), nullable=False, index=True)
    status = Column(String(20), nullable=False, index=True)
    enrolled_at = Column(DateTime, nullable=False)  # naive UTC
    sequence = Column(Integer, nullable=False, default=0)
    promoted_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    cancelled_by = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)


# ===========================================
# Database Session Management
# ===========================================


def get_engine():
    """Get async engine instance."""
    settings = get_settings()
    return create_async_engine(settings.DATABASE_URL, echo=settings.DEBUG)


def get_session_factory():
    """Get async session factory."""
    engine = get_engine()
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db():
    """Initialize database tables."""
    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
