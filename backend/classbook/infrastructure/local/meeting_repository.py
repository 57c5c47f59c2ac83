"""
SQLite implementation of meeting repository.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import and_, select

from classbook.core.exceptions import NotFoundError
from classbook.infrastructure.local.database import MeetingORM, get_session_factory
from classbook.interfaces.meeting_repository import IMeetingRepository
from classbook.models.meeting import Meeting, MeetingCreate


class SqliteMeetingRepository(IMeetingRepository):
    """SQLite implementation of meeting repository."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_session_factory()

    def _orm_to_model(self, orm: MeetingORM) -> Meeting:
        return Meeting(
            id=orm.id,
            section_id=orm.section_id,
            start_time=datetime.fromisoformat(orm.start_time),
            end_time=datetime.fromisoformat(orm.end_time),
            is_recurring=bool(orm.is_recurring),
            recurrence_rule=orm.recurrence_rule,
            exceptions=[date.fromisoformat(value) for value in orm.exceptions or []],
            room_id=orm.room_id,
            teacher_ids=orm.teacher_ids or [],
        )

    def _apply(self, orm: MeetingORM, data: MeetingCreate) -> None:
        orm.section_id = data.section_id
        orm.start_time = data.start_time.isoformat()
        orm.end_time = data.end_time.isoformat()
        orm.is_recurring = data.is_recurring
        orm.recurrence_rule = data.recurrence_rule
        orm.exceptions = [value.isoformat() for value in data.exceptions]
        orm.room_id = data.room_id
        orm.teacher_ids = list(data.teacher_ids)

    async def create(self, data: MeetingCreate) -> Meeting:
        async with self._session_factory() as session:
            orm = MeetingORM(id=str(uuid4()))
            self._apply(orm, data)
            session.add(orm)
            await session.commit()
            await session.refresh(orm)
            return self._orm_to_model(orm)

    async def get(self, meeting_id: str) -> Optional[Meeting]:
        async with self._session_factory() as session:
            result = await session.execute(select(MeetingORM).where(MeetingORM.id == meeting_id))
            orm = result.scalar_one_or_none()
            return self._orm_to_model(orm) if orm else None

    async def list(
        self,
        section_id: Optional[str] = None,
        room_id: Optional[str] = None,
        teacher_id: Optional[str] = None,
        limit: int = 500,
        offset: int = 0,
    ) -> list[Meeting]:
        async with self._session_factory() as session:
            conditions = []
            if section_id is not None:
                conditions.append(MeetingORM.section_id == section_id)
            if room_id is not None:
                conditions.append(MeetingORM.room_id == room_id)

            query = select(MeetingORM)
            if conditions:
                query = query.where(and_(*conditions))
            query = query.order_by(MeetingORM.created_at, MeetingORM.id)
            result = await session.execute(query)
            meetings = [self._orm_to_model(orm) for orm in result.scalars().all()]

        # teacher_ids is a JSON list, filtered here rather than in SQL
        if teacher_id is not None:
            meetings = [m for m in meetings if teacher_id in m.teacher_ids]
        return meetings[offset : offset + limit]

    async def update(self, meeting_id: str, data: MeetingCreate) -> Meeting:
        async with self._session_factory() as session:
            result = await session.execute(select(MeetingORM).where(MeetingORM.id == meeting_id))
            orm = result.scalar_one_or_none()
            if not orm:
                raise NotFoundError(f"Meeting {meeting_id} not found")

            self._apply(orm, data)
            await session.commit()
            await session.refresh(orm)
            return self._orm_to_model(orm)

    async def delete(self, meeting_id: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(select(MeetingORM).where(MeetingORM.id == meeting_id))
            orm = result.scalar_one_or_none()
            if not orm:
                return False
            await session.delete(orm)
            await session.commit()
            return True
