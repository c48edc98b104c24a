"""SQLModel data models.

This module defines the application's database tables using SQLModel.
Each class maps to a table and uses relationships where appropriate.

Running sessions are rows whose end column is NULL. Partial unique
indexes keep at most one running active group per room, one running
supervision per staff member and session, and one open visit per
student, so concurrent writers cannot create duplicates.
"""

from typing import List, Optional
from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import DateTime, Index, text
from datetime import datetime, date, time as dt_time, timezone


# Domain timestamps are local wall-clock time, stored without a zone.
NAIVE_DT = DateTime(timezone=False)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Person(SQLModel, table=True):
    """A human known to the system, student or staff.

    `tag_id` is the RFID tag assigned to the person, normalised to
    upper-case hex without separators.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    first_name: str
    last_name: str
    tag_id: Optional[str] = Field(default=None, index=True, unique=True)
    created_at: datetime = Field(default_factory=_utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Account(SQLModel, table=True):
    """A login account.

    Fields:
    - `email`: unique login name
    - `password_hash`: hashed password string (never store plaintext)
    - `role`: `admin` or `staff`
    - `person_id`: the person behind the account, if any
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(index=True, nullable=False, unique=True)
    password_hash: str
    role: str = Field(default="staff")
    person_id: Optional[int] = Field(default=None, foreign_key="person.id")
    is_active: bool = True
    created_at: datetime = Field(default_factory=_utcnow)


class Staff(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    person_id: int = Field(foreign_key="person.id", unique=True)
    staff_notes: Optional[str] = None
    person: Optional[Person] = Relationship()


class EducationGroup(SQLModel, table=True):
    """An OGS group (class cohort) students belong to."""
    __tablename__ = "education_group"
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)
    room_id: Optional[int] = Field(default=None, foreign_key="room.id")
    students: List["Student"] = Relationship(back_populates="group")


class Student(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    person_id: int = Field(foreign_key="person.id", unique=True)
    school_class: str
    group_id: Optional[int] = Field(default=None, foreign_key="education_group.id")
    person: Optional[Person] = Relationship()
    group: Optional[EducationGroup] = Relationship(back_populates="students")


class Room(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)
    building: Optional[str] = None
    floor: Optional[int] = None
    capacity: Optional[int] = None
    category: Optional[str] = None
    color: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)


class ActivityCategory(SQLModel, table=True):
    __tablename__ = "activity_category"
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)
    description: Optional[str] = None
    color: Optional[str] = None


class ActivityGroup(SQLModel, table=True):
    """A planned activity students can take part in."""
    __tablename__ = "activity_group"
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)
    max_participants: int = 20
    is_open: bool = False
    category_id: int = Field(foreign_key="activity_category.id")
    planned_room_id: Optional[int] = Field(default=None, foreign_key="room.id")
    category: Optional[ActivityCategory] = Relationship()


class Device(SQLModel, table=True):
    """An RFID reader registered to post check-ins."""
    id: Optional[int] = Field(default=None, primary_key=True)
    device_id: str = Field(index=True, unique=True)
    name: Optional[str] = None
    api_key: str = Field(index=True, unique=True)
    status: str = Field(default="active")
    last_seen: Optional[datetime] = Field(default=None, sa_type=NAIVE_DT)


class ActiveGroup(SQLModel, table=True):
    """A running (or finished) session of an activity in a room.

    Times are naive local timestamps so that "today" comparisons work
    the same on SQLite and Postgres.
    """
    __tablename__ = "active_group"
    __table_args__ = (
        Index(
            "uq_active_group_running_room",
            "room_id",
            unique=True,
            sqlite_where=text("end_time IS NULL"),
            postgresql_where=text("end_time IS NULL"),
        ),
    )
    id: Optional[int] = Field(default=None, primary_key=True)
    group_id: int = Field(foreign_key="activity_group.id", index=True)
    room_id: int = Field(foreign_key="room.id", index=True)
    start_time: datetime = Field(default_factory=datetime.now, sa_type=NAIVE_DT)
    end_time: Optional[datetime] = Field(default=None, sa_type=NAIVE_DT)
    last_activity: datetime = Field(default_factory=datetime.now, sa_type=NAIVE_DT)
    device_id: Optional[int] = Field(default=None, foreign_key="device.id")
    activity: Optional[ActivityGroup] = Relationship()
    room: Optional[Room] = Relationship()

    @property
    def is_active(self) -> bool:
        return self.end_time is None


class GroupSupervisor(SQLModel, table=True):
    """A staff member recorded as supervising an active group."""
    __tablename__ = "group_supervisor"
    __table_args__ = (
        Index(
            "uq_group_supervisor_running",
            "group_id",
            "staff_id",
            unique=True,
            sqlite_where=text("end_date IS NULL"),
            postgresql_where=text("end_date IS NULL"),
        ),
    )
    id: Optional[int] = Field(default=None, primary_key=True)
    group_id: int = Field(foreign_key="active_group.id", index=True)
    staff_id: int = Field(foreign_key="staff.id", index=True)
    role: str = Field(default="supervisor")
    start_date: datetime = Field(default_factory=datetime.now, sa_type=NAIVE_DT)
    end_date: Optional[datetime] = Field(default=None, sa_type=NAIVE_DT)
    staff: Optional[Staff] = Relationship()

    @property
    def is_active(self) -> bool:
        return self.end_date is None


class Visit(SQLModel, table=True):
    """A student's stay in an active group between check-in and check-out."""
    __table_args__ = (
        Index(
            "uq_visit_open_student",
            "student_id",
            unique=True,
            sqlite_where=text("exit_time IS NULL"),
            postgresql_where=text("exit_time IS NULL"),
        ),
    )
    id: Optional[int] = Field(default=None, primary_key=True)
    student_id: int = Field(foreign_key="student.id", index=True)
    active_group_id: int = Field(foreign_key="active_group.id", index=True)
    entry_time: datetime = Field(default_factory=datetime.now, sa_type=NAIVE_DT)
    exit_time: Optional[datetime] = Field(default=None, sa_type=NAIVE_DT)
    active_group: Optional[ActiveGroup] = Relationship()

    @property
    def is_active(self) -> bool:
        return self.exit_time is None


class FeedbackEntry(SQLModel, table=True):
    __tablename__ = "feedback_entry"
    id: Optional[int] = Field(default=None, primary_key=True)
    value: str
    day: date = Field(index=True)
    time: dt_time
    student_id: int = Field(foreign_key="student.id", index=True)
    is_mensa_feedback: bool = Field(default=False, index=True)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    student: Optional[Student] = Relationship()
