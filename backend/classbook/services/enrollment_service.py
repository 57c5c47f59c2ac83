"""
Enrollment service.

Runs enrollment ledger operations against persisted sections, one mutation
per section at a time.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Optional

from classbook.core.exceptions import NotFoundError
from classbook.core.logger import setup_logger
from classbook.interfaces.section_repository import ISectionRepository
from classbook.models.enrollment import Enrollment, EnrollmentStats, Section, WithdrawalResult
from classbook.services.enrollment_ledger import EnrollmentLedger

logger = setup_logger(__name__)


class EnrollmentService:
    """Service that loads a section, applies one ledger operation and saves it.

    Each mutating call holds the section's lock from load to save, so two
    requests for the same section never interleave. Different sections do
    not wait for each other.
    """

    def __init__(self, section_repo: ISectionRepository):
        self.section_repo = section_repo
        self._locks: dict[str, asyncio.Lock] = {}
        self._waiters: dict[str, int] = {}

    @asynccontextmanager
    async def _section_lock(self, section_id: str) -> AsyncIterator[None]:
        """Hold the section's lock; it is dropped once nobody holds or awaits it."""
        lock = self._locks.setdefault(section_id, asyncio.Lock())
        self._waiters[section_id] = self._waiters.get(section_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[section_id] -= 1
            if self._waiters[section_id] == 0:
                del self._waiters[section_id]
                del self._locks[section_id]

    async def _load(self, section_id: str) -> Section:
        section = await self.section_repo.get(section_id)
        if not section:
            raise NotFoundError(f"Section {section_id} not found")
        return section

    async def _save_changed(self, section: Section, ledger: EnrollmentLedger) -> None:
        before = {record.id: record for record in section.enrollments}
        changed = [record for record in ledger.records if before.get(record.id) != record]
        if changed:
            await self.section_repo.save_enrollments(section.id, changed)

    async def request_enrollment(
        self,
        section_id: str,
        student_id: str,
        requested_at: Optional[datetime] = None,
    ) -> Enrollment:
        """Enroll or waitlist a student in a section."""
        async with self._section_lock(section_id):
            section = await self._load(section_id)
            ledger = EnrollmentLedger(section)
            enrollment = ledger.request_enrollment(student_id, requested_at)
            await self._save_changed(section, ledger)
            return enrollment

    async def withdraw(self, enrollment_id: str, actor_id: Optional[str] = None) -> WithdrawalResult:
        """Cancel an enrollment and promote from the waitlist if a seat opened."""
        owner = await self.section_repo.get_by_enrollment(enrollment_id)
        if not owner:
            raise NotFoundError(f"Enrollment {enrollment_id} not found")

        async with self._section_lock(owner.id):
            section = await self._load(owner.id)
            ledger = EnrollmentLedger(section)
            result = ledger.withdraw(enrollment_id, actor_id)
            await self._save_changed(section, ledger)
            if result.promoted:
                logger.info(
                    "Section %s: withdrawal of %s promoted %s",
                    section.id,
                    enrollment_id,
                    ", ".join(e.student_id for e in result.promoted),
                )
            return result

    async def promote_from_waitlist(self, section_id: str) -> list[Enrollment]:
        """Fill any free seats in a section from its waitlist."""
        async with self._section_lock(section_id):
            section = await self._load(section_id)
            ledger = EnrollmentLedger(section)
            promoted = ledger.promote_from_waitlist()
            await self._save_changed(section, ledger)
            return promoted

    async def stats(self, section_id: str) -> EnrollmentStats:
        """Current statistics; may trail a mutation that is still in flight."""
        section = await self._load(section_id)
        return EnrollmentLedger(section).stats()
