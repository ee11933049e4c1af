# mediq/models.py
import enum

from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, Text, Date, Boolean, Table, Index,
    Enum as SQLAlchemyEnum,
)
from sqlalchemy.orm import Session, relationship, Query
from sqlalchemy.sql import func

from .database import Base


class Lifecycle(str, enum.Enum):
    active = "active"
    deleted = "deleted"


class ScheduleStatus(str, enum.Enum):
    scheduled = "scheduled"
    visited = "visited"
    # Reserved for the admin dashboard; no automatic code path produces these
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"


# Statuses a kiosk scan can resolve to (cancelled is excluded)
CHECKIN_STATUSES = (ScheduleStatus.scheduled, ScheduleStatus.visited)


class LifecycleMixin:
    """Soft-delete flag plus audit timestamps shared by every entity.

    Rows are never removed; `mark_deleted()` is the only removal path and
    `active()` is the default entry point for queries.
    """

    is_deleted = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def lifecycle(self) -> Lifecycle:
        return Lifecycle.deleted if self.is_deleted else Lifecycle.active

    def mark_deleted(self) -> None:
        self.is_deleted = True

    @classmethod
    def active(cls, db: Session) -> Query:
        return db.query(cls).filter(cls.is_deleted.is_(False))


schedule_examinations = Table(
    "schedule_examinations",
    Base.metadata,
    Column("schedule_id", Integer, ForeignKey("schedules.id", ondelete="CASCADE"), primary_key=True),
    Column("examination_id", Integer, ForeignKey("examinations.id"), primary_key=True),
)


class AdminUser(Base):
    """Administrator account for the management screens."""
    __tablename__ = "admins"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Patient(LifecycleMixin, Base):
    __tablename__ = "patients"
    __table_args__ = (
        # Uniqueness holds among active rows only, so this is not a unique index
        Index('idx_patients_code_deleted', 'patient_code', 'is_deleted'),
    )

    id = Column(Integer, primary_key=True, index=True)
    patient_code = Column(String(50), nullable=False)  # QR payload printed on the card
    name = Column(String(100), nullable=False)
    name_kana = Column(String(100), nullable=False)  # phonetic reading used for speech
    voice_template = Column(Text, nullable=True)
    print_template = Column(Text, nullable=True)

    schedules = relationship("Schedule", back_populates="patient")


class Department(LifecycleMixin, Base):
    __tablename__ = "departments"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)

    doctors = relationship("Doctor", back_populates="department")


class Doctor(LifecycleMixin, Base):
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=False, index=True)

    department = relationship("Department", back_populates="doctors")


class WaitingArea(LifecycleMixin, Base):
    __tablename__ = "waiting_areas"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)


class Examination(LifecycleMixin, Base):
    __tablename__ = "examinations"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True)


class Schedule(LifecycleMixin, Base):
    """A patient's appointment on a given day."""
    __tablename__ = "schedules"
    __table_args__ = (
        Index('idx_schedules_patient_date', 'patient_id', 'date'),
        Index('idx_schedules_date_start', 'date', 'start_time'),
    )

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=True)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=False)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False)
    waiting_area_id = Column(Integer, ForeignKey("waiting_areas.id"), nullable=False)
    note = Column(Text, nullable=True)
    status = Column(
        SQLAlchemyEnum(ScheduleStatus, name='schedule_status'),
        default=ScheduleStatus.scheduled,
        nullable=False,
    )
    visited_at = Column(DateTime(timezone=True), nullable=True)

    patient = relationship("Patient", back_populates="schedules")
    department = relationship("Department")
    doctor = relationship("Doctor")
    waiting_area = relationship("WaitingArea")
    examinations = relationship(
        "Examination",
        secondary=schedule_examinations,
        order_by="Examination.id",
    )
