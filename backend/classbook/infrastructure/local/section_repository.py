"""
SQLite implementation of section repository.
"""

from __future__ import annotations

from typing import Optional
from uuid import uuid4

from sqlalchemy import select

from classbook.core.exceptions import NotFoundError
from classbook.infrastructure.local.database import (
    EnrollmentORM,
    SectionORM,
    get_session_factory,
)
from classbook.interfaces.section_repository import ISectionRepository
from classbook.models.enrollment import Enrollment, Section, SectionCreate
from classbook.utils.datetime_utils import ensure_utc, to_naive_utc


class SqliteSectionRepository(ISectionRepository):
    """SQLite implementation of section repository."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    def _enrollment_to_model(self, orm: EnrollmentORM) -> Enrollment:
        return Enrollment(
            id=orm.id,
            section_id=orm.section_id,
            student_id=orm.student_id,
            status=orm.status,
            enrolled_at=ensure_utc(orm.enrolled_at),
            sequence=orm.sequence,
            promoted_at=ensure_utc(orm.promoted_at),
            cancelled_at=ensure_utc(orm.cancelled_at),
            cancelled_by=orm.cancelled_by,
        )

    def _orm_to_model(self, orm: SectionORM, enrollments: list[EnrollmentORM]) -> Section:
        return Section(
            id=orm.id,
            name=orm.name,
            capacity=orm.capacity,
            room_id=orm.room_id,
            room_capacity=orm.room_capacity,
            enrollments=[self._enrollment_to_model(e) for e in enrollments],
        )

    async def _load(self, session, section_id: str) -> Optional[Section]:
        result = await session.execute(select(SectionORM).where(SectionORM.id == section_id))
        orm = result.scalar_one_or_none()
        if not orm:
            return None
        enrollments = await session.execute(
            select(EnrollmentORM)
            .where(EnrollmentORM.section_id == section_id)
            .order_by(EnrollmentORM.sequence)
        )
        return self._orm_to_model(orm, list(enrollments.scalars().all()))

    async def create(self, data: SectionCreate) -> Section:
        async with self._session_factory() as session:
            orm = SectionORM(
                id=str(uuid4()),
                name=data.name,
                capacity=data.capacity,
                room_id=data.room_id,
                room_capacity=data.room_capacity,
            )
            session.add(orm)
            await session.commit()
            await session.refresh(orm)
            return self._orm_to_model(orm, [])

    async def get(self, section_id: str) -> Optional[Section]:
        async with self._session_factory() as session:
            return await self._load(session, section_id)

    async def list(self, section_ids: Optional[list[str]] = None) -> list[Section]:
        async with self._session_factory() as session:
            query = select(SectionORM.id).order_by(SectionORM.created_at, SectionORM.id)
            if section_ids is not None:
                query = query.where(SectionORM.id.in_(section_ids))
            result = await session.execute(query)
            sections = []
            for section_id in result.scalars().all():
                section = await self._load(session, section_id)
                if section:
                    sections.append(section)
            return sections

    async def get_by_enrollment(self, enrollment_id: str) -> Optional[Section]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(EnrollmentORM.section_id).where(EnrollmentORM.id == enrollment_id)
            )
            section_id = result.scalar_one_or_none()
            if not section_id:
                return None
            return await self._load(session, section_id)

    async def save_enrollments(self, section_id: str, enrollments: list[Enrollment]) -> None:
        async with self._session_factory() as session:
            exists = await session.execute(select(SectionORM.id).where(SectionORM.id == section_id))
            if exists.scalar_one_or_none() is None:
                raise NotFoundError(f"Section {section_id} not found")

            for enrollment in enrollments:
                result = await session.execute(
                    select(EnrollmentORM).where(EnrollmentORM.id == enrollment.id)
                )
                orm = result.scalar_one_or_none()
                if orm is None:
                    orm = EnrollmentORM(id=enrollment.id, section_id=section_id)
                    session.add(orm)
                orm.student_id = enrollment.student_id
                orm.status = enrollment.status.value
                orm.enrolled_at = to_naive_utc(enrollment.enrolled_at)
                orm.sequence = enrollment.sequence
                orm.promoted_at = to_naive_utc(enrollment.promoted_at)
                orm.cancelled_at = to_naive_utc(enrollment.cancelled_at)
                orm.cancelled_by = enrollment.cancelled_by
            await session.commit()
