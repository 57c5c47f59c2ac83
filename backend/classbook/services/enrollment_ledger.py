"""
Enrollment ledger.

Owns the enrollment records of one section and keeps the capacity and
single-active-enrollment invariants while students enroll, withdraw and are
promoted from the waitlist.
"""

from __future__ import annotations

import threading
from datetime import datetime
from typing import Optional
from uuid import uuid4

from classbook.core.exceptions import (
    DuplicateActiveEnrollmentError,
    NotFoundError,
    ValidationError,
)
from classbook.core.logger import setup_logger
from classbook.models.enrollment import Enrollment, EnrollmentStats, Section, WithdrawalResult
from classbook.models.enums import EnrollmentStatus
from classbook.utils.datetime_utils import now_utc

logger = setup_logger(__name__)


class EnrollmentLedger:
    """Enrollment state machine for a single section.

    Per student attempt: enrolled | waitlisted -> cancelled. Mutations are
    serialized by a per-ledger lock. Records are replaced rather than
    modified in place, so readers never see a half-updated record, though
    ``stats`` may observe a state between two steps of a mutation.

    The room capacity defaults to the section's ``room_capacity``. A
    capacity lowered below the enrolled count is reported by ``stats`` and
    never resolved by demotion.
    """

    def __init__(self, section: Section, room_capacity: Optional[int] = None):
        self.section_id = section.id
        self._capacity = section.capacity
        self._room_capacity = room_capacity if room_capacity is not None else section.room_capacity
        self._records: list[Enrollment] = list(section.enrollments)
        self._next_sequence = max((r.sequence for r in self._records), default=-1) + 1
        self._lock = threading.RLock()

    # ===========================================
    # Capacity
    # ===========================================

    @property
    def capacity(self) -> int:
        """Effective capacity: the section's, limited by the room's when known."""
        if self._room_capacity is None:
            return self._capacity
        return min(self._capacity, self._room_capacity)

    def refresh_capacity(self, capacity: int, room_capacity: Optional[int] = None) -> None:
        """Apply an externally changed capacity.

        Nobody is demoted and nobody is promoted; call
        ``promote_from_waitlist`` afterwards to fill newly opened seats.
        """
        if capacity < 0:
            raise ValidationError(f"Capacity must not be negative, got {capacity}")
        with self._lock:
            self._capacity = capacity
            self._room_capacity = room_capacity

    # ===========================================
    # Queries
    # ===========================================

    @property
    def records(self) -> list[Enrollment]:
        return list(self._records)

    def get(self, enrollment_id: str) -> Optional[Enrollment]:
        for record in self._records:
            if record.id == enrollment_id:
                return record
        return None

    def active_for(self, student_id: str) -> Optional[Enrollment]:
        for record in self._records:
            if record.student_id == student_id and record.is_active:
                return record
        return None

    def enrolled(self) -> list[Enrollment]:
        return self._by_status(EnrollmentStatus.ENROLLED)

    def waitlist(self) -> list[Enrollment]:
        """Waitlisted records in promotion order."""
        return self._by_status(EnrollmentStatus.WAITLISTED)

    def waitlist_position(self, enrollment_id: str) -> Optional[int]:
        """1-based position in the waitlist, None if not waitlisted."""
        for position, record in enumerate(self.waitlist(), start=1):
            if record.id == enrollment_id:
                return position
        return None

    def to_section(self, section: Section) -> Section:
        """Copy of ``section`` carrying the ledger's current records."""
        return section.model_copy(update={"enrollments": self.records})

    def _by_status(self, status: EnrollmentStatus) -> list[Enrollment]:
        return sorted(
            (r for r in self._records if r.status == status),
            key=lambda r: r.fifo_key,
        )

    def _enrolled_count(self) -> int:
        return sum(1 for r in self._records if r.status == EnrollmentStatus.ENROLLED)

    def _replace(self, updated: Enrollment) -> None:
        for index, record in enumerate(self._records):
            if record.id == updated.id:
                self._records[index] = updated
                return
        raise NotFoundError(f"Enrollment {updated.id} not found")

    # ===========================================
    # Mutations
    # ===========================================

    def request_enrollment(self, student_id: str, requested_at: Optional[datetime] = None) -> Enrollment:
        """
        Create an enrollment attempt for a student.

        The record is enrolled when a seat is free, otherwise waitlisted
        behind every earlier request.

        Raises:
            DuplicateActiveEnrollmentError: student already enrolled or waitlisted
        """
        with self._lock:
            existing = self.active_for(student_id)
            if existing is not None:
                raise DuplicateActiveEnrollmentError(self.section_id, student_id, existing.id)

            status = (
                EnrollmentStatus.ENROLLED
                if self._enrolled_count() < self.capacity
                else EnrollmentStatus.WAITLISTED
            )
            record = Enrollment(
                id=str(uuid4()),
                section_id=self.section_id,
                student_id=student_id,
                status=status,
                enrolled_at=requested_at or now_utc(),
                sequence=self._next_sequence,
            )
            self._next_sequence += 1
            self._records.append(record)
            logger.info(
                "Section %s: student %s %s (enrollment %s)",
                self.section_id,
                student_id,
                status.value,
                record.id,
            )
            return record

    def withdraw(self, enrollment_id: str, actor_id: Optional[str] = None) -> WithdrawalResult:
        """
        Cancel an active enrollment.

        The caller is responsible for checking that the actor may do this.
        Withdrawing an enrolled record promotes from the waitlist at once.

        Raises:
            NotFoundError: no active enrollment with this id
        """
        with self._lock:
            record = self.get(enrollment_id)
            if record is None or not record.is_active:
                raise NotFoundError(
                    f"Active enrollment {enrollment_id} not found in section {self.section_id}"
                )

            cancelled = record.model_copy(
                update={
                    "status": EnrollmentStatus.CANCELLED,
                    "cancelled_at": now_utc(),
                    "cancelled_by": actor_id,
                }
            )
            self._replace(cancelled)
            logger.info(
                "Section %s: enrollment %s cancelled by %s (was %s)",
                self.section_id,
                enrollment_id,
                actor_id or "unknown",
                record.status.value,
            )

            promoted: list[Enrollment] = []
            if record.status == EnrollmentStatus.ENROLLED:
                promoted = self.promote_from_waitlist()
            return WithdrawalResult(withdrawn=cancelled, promoted=promoted)

    def promote_from_waitlist(self) -> list[Enrollment]:
        """Fill free seats from the head of the waitlist.

        Safe to call at any time; returns the promoted records, possibly none.
        """
        with self._lock:
            promoted: list[Enrollment] = []
            enrolled_count = self._enrolled_count()
            waitlist = self.waitlist()
            while enrolled_count < self.capacity and waitlist:
                head = waitlist.pop(0)
                updated = head.model_copy(
                    update={"status": EnrollmentStatus.ENROLLED, "promoted_at": now_utc()}
                )
                self._replace(updated)
                enrolled_count += 1
                promoted.append(updated)
                logger.info(
                    "Section %s: promoted student %s from waitlist (enrollment %s)",
                    self.section_id,
                    updated.student_id,
                    updated.id,
                )
            return promoted

    # ===========================================
    # Statistics
    # ===========================================

    def stats(self) -> EnrollmentStats:
        """Counts and utilization. Not synchronized with pending mutations."""
        records = list(self._records)
        enrolled = sum(1 for r in records if r.status == EnrollmentStatus.ENROLLED)
        waitlisted = sum(1 for r in records if r.status == EnrollmentStatus.WAITLISTED)
        cancelled = sum(1 for r in records if r.status == EnrollmentStatus.CANCELLED)
        capacity = self.capacity
        return EnrollmentStats(
            capacity=capacity,
            enrolled_count=enrolled,
            waitlisted_count=waitlisted,
            cancelled_count=cancelled,
            available_slots=max(0, capacity - enrolled),
            utilization_rate=enrolled / capacity if capacity > 0 else 0.0,
            is_over_capacity=enrolled > capacity,
        )


def calculate_stats(section: Section, room_capacity: Optional[int] = None) -> EnrollmentStats:
    """Statistics for a section without keeping a ledger around."""
    return EnrollmentLedger(section, room_capacity=room_capacity).stats()
