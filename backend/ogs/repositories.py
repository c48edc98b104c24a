"""Repository classes encapsulating database operations.

Each repository is small and focused on a single aggregate (people,
rooms, activities, sessions, visits, feedback). Repositories return
SQLModel objects and perform commits/refreshes where appropriate.
"""

from datetime import date, datetime
from typing import List, Optional
from sqlmodel import Session, select, col
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from . import models


class _Repository:
    def __init__(self, session: Session):
        self.session = session

    def save(self, obj):
        """Persist `obj` (new or modified) and return the refreshed instance."""
        self.session.add(obj)
        self.session.commit()
        self.session.refresh(obj)
        return obj

    def delete(self, obj) -> None:
        self.session.delete(obj)
        self.session.commit()

    def insert_guarded(self, obj):
        """Insert `obj` inside a savepoint.

        Returns the persisted instance, or `None` when a unique
        constraint rejected the row (another writer got there first).
        The surrounding transaction stays usable either way.
        """
        try:
            with self.session.begin_nested():
                self.session.add(obj)
        except IntegrityError:
            return None
        self.session.commit()
        self.session.refresh(obj)
        return obj


class PersonRepository(_Repository):
    def get(self, person_id: int) -> Optional[models.Person]:
        return self.session.get(models.Person, person_id)

    def get_by_tag(self, tag_id: str) -> Optional[models.Person]:
        stmt = select(models.Person).where(models.Person.tag_id == tag_id)
        return self.session.exec(stmt).first()


class AccountRepository(_Repository):
    """CRUD operations for `Account` objects."""

    def get(self, account_id: int) -> Optional[models.Account]:
        """Get an `Account` by primary key."""
        return self.session.get(models.Account, account_id)

    def get_by_email(self, email: str) -> Optional[models.Account]:
        """Return an `Account` by email or `None` if not found."""
        stmt = select(models.Account).where(models.Account.email == email)
        return self.session.exec(stmt).first()

    def list_by_person(self, person_id: int) -> List[models.Account]:
        stmt = select(models.Account).where(models.Account.person_id == person_id)
        return self.session.exec(stmt).all()


class StaffRepository(_Repository):
    def get(self, staff_id: int) -> Optional[models.Staff]:
        return self.session.get(models.Staff, staff_id)

    def get_by_person(self, person_id: int) -> Optional[models.Staff]:
        stmt = select(models.Staff).where(models.Staff.person_id == person_id)
        return self.session.exec(stmt).first()

    def list(self) -> List[models.Staff]:
        stmt = (
            select(models.Staff)
            .join(models.Person, models.Person.id == models.Staff.person_id)
            .order_by(models.Person.last_name, models.Person.first_name)
        )
        return self.session.exec(stmt).all()


class StudentRepository(_Repository):
    def get(self, student_id: int) -> Optional[models.Student]:
        return self.session.get(models.Student, student_id)

    def get_by_person(self, person_id: int) -> Optional[models.Student]:
        stmt = select(models.Student).where(models.Student.person_id == person_id)
        return self.session.exec(stmt).first()

    def list(self, group_id: Optional[int] = None, search: Optional[str] = None) -> List[models.Student]:
        """List students, optionally filtered by group and a name search."""
        stmt = select(models.Student).join(models.Person, models.Person.id == models.Student.person_id)
        if group_id is not None:
            stmt = stmt.where(models.Student.group_id == group_id)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(
                col(models.Person.first_name).ilike(pattern) | col(models.Person.last_name).ilike(pattern)
            )
        stmt = stmt.order_by(models.Person.last_name, models.Person.first_name)
        return self.session.exec(stmt).all()


class EducationGroupRepository(_Repository):
    def get(self, group_id: int) -> Optional[models.EducationGroup]:
        return self.session.get(models.EducationGroup, group_id)

    def get_by_name(self, name: str) -> Optional[models.EducationGroup]:
        stmt = select(models.EducationGroup).where(models.EducationGroup.name == name)
        return self.session.exec(stmt).first()

    def list(self) -> List[models.EducationGroup]:
        return self.session.exec(select(models.EducationGroup).order_by(models.EducationGroup.name)).all()


class RoomRepository(_Repository):
    """CRUD operations for `Room` records."""

    def get(self, room_id: int) -> Optional[models.Room]:
        return self.session.get(models.Room, room_id)

    def get_by_name(self, name: str) -> Optional[models.Room]:
        stmt = select(models.Room).where(models.Room.name == name)
        return self.session.exec(stmt).first()

    def list(self, building: Optional[str] = None, category: Optional[str] = None) -> List[models.Room]:
        stmt = select(models.Room)
        if building:
            stmt = stmt.where(models.Room.building == building)
        if category:
            stmt = stmt.where(models.Room.category == category)
        return self.session.exec(stmt.order_by(models.Room.name)).all()


class ActivityCategoryRepository(_Repository):
    def get(self, category_id: int) -> Optional[models.ActivityCategory]:
        return self.session.get(models.ActivityCategory, category_id)

    def get_by_name(self, name: str) -> Optional[models.ActivityCategory]:
        stmt = select(models.ActivityCategory).where(models.ActivityCategory.name == name)
        return self.session.exec(stmt).first()

    def list(self) -> List[models.ActivityCategory]:
        return self.session.exec(select(models.ActivityCategory).order_by(models.ActivityCategory.name)).all()


class ActivityGroupRepository(_Repository):
    def get(self, activity_id: int) -> Optional[models.ActivityGroup]:
        return self.session.get(models.ActivityGroup, activity_id)

    def get_by_name(self, name: str) -> Optional[models.ActivityGroup]:
        stmt = select(models.ActivityGroup).where(models.ActivityGroup.name == name)
        return self.session.exec(stmt).first()

    def list(self, name: Optional[str] = None) -> List[models.ActivityGroup]:
        stmt = select(models.ActivityGroup)
        if name:
            stmt = stmt.where(col(models.ActivityGroup.name).ilike(f"%{name}%"))
        return self.session.exec(stmt.order_by(models.ActivityGroup.name)).all()


class ActiveGroupRepository(_Repository):
    """Queries over running and finished activity sessions."""

    def get(self, active_group_id: int) -> Optional[models.ActiveGroup]:
        return self.session.get(models.ActiveGroup, active_group_id)

    def list(self, running_only: bool = False) -> List[models.ActiveGroup]:
        stmt = select(models.ActiveGroup)
        if running_only:
            stmt = stmt.where(col(models.ActiveGroup.end_time).is_(None))
        return self.session.exec(stmt.order_by(col(models.ActiveGroup.start_time).desc())).all()

    def find_running_by_room(self, room_id: int) -> List[models.ActiveGroup]:
        stmt = select(models.ActiveGroup).where(
            models.ActiveGroup.room_id == room_id,
            col(models.ActiveGroup.end_time).is_(None),
        )
        return self.session.exec(stmt).all()

    def find_running_by_device(self, device_id: int) -> List[models.ActiveGroup]:
        stmt = select(models.ActiveGroup).where(
            models.ActiveGroup.device_id == device_id,
            col(models.ActiveGroup.end_time).is_(None),
        )
        return self.session.exec(stmt).all()

    def find_running_since(self, activity_id: int, room_id: int, since: datetime) -> Optional[models.ActiveGroup]:
        """Return the running session of an activity in a room started at or after `since`."""
        stmt = select(models.ActiveGroup).where(
            models.ActiveGroup.group_id == activity_id,
            models.ActiveGroup.room_id == room_id,
            models.ActiveGroup.start_time >= since,
            col(models.ActiveGroup.end_time).is_(None),
        )
        return self.session.exec(stmt.order_by(col(models.ActiveGroup.start_time).desc())).first()

    def find_running_before(self, activity_id: int, room_id: int, before: datetime) -> List[models.ActiveGroup]:
        stmt = select(models.ActiveGroup).where(
            models.ActiveGroup.group_id == activity_id,
            models.ActiveGroup.room_id == room_id,
            models.ActiveGroup.start_time < before,
            col(models.ActiveGroup.end_time).is_(None),
        )
        return self.session.exec(stmt).all()

    def count_by_room(self, room_id: int) -> int:
        stmt = select(func.count()).select_from(models.ActiveGroup).where(models.ActiveGroup.room_id == room_id)
        return self.session.exec(stmt).one()

    def count_by_activity(self, activity_id: int) -> int:
        stmt = select(func.count()).select_from(models.ActiveGroup).where(models.ActiveGroup.group_id == activity_id)
        return self.session.exec(stmt).one()


class GroupSupervisorRepository(_Repository):
    def get(self, supervision_id: int) -> Optional[models.GroupSupervisor]:
        return self.session.get(models.GroupSupervisor, supervision_id)

    def find_running(self, active_group_id: int, staff_id: int) -> Optional[models.GroupSupervisor]:
        stmt = select(models.GroupSupervisor).where(
            models.GroupSupervisor.group_id == active_group_id,
            models.GroupSupervisor.staff_id == staff_id,
            col(models.GroupSupervisor.end_date).is_(None),
        )
        return self.session.exec(stmt).first()

    def list_by_group(self, active_group_id: int, running_only: bool = True) -> List[models.GroupSupervisor]:
        stmt = select(models.GroupSupervisor).where(models.GroupSupervisor.group_id == active_group_id)
        if running_only:
            stmt = stmt.where(col(models.GroupSupervisor.end_date).is_(None))
        return self.session.exec(stmt.order_by(models.GroupSupervisor.start_date)).all()

    def list_by_staff(self, staff_id: int) -> List[models.GroupSupervisor]:
        stmt = select(models.GroupSupervisor).where(models.GroupSupervisor.staff_id == staff_id)
        return self.session.exec(stmt).all()


class VisitRepository(_Repository):
    def get(self, visit_id: int) -> Optional[models.Visit]:
        return self.session.get(models.Visit, visit_id)

    def current_for_student(self, student_id: int) -> Optional[models.Visit]:
        stmt = select(models.Visit).where(
            models.Visit.student_id == student_id,
            col(models.Visit.exit_time).is_(None),
        )
        return self.session.exec(stmt).first()

    def list_by_group(self, active_group_id: int, open_only: bool = False) -> List[models.Visit]:
        stmt = select(models.Visit).where(models.Visit.active_group_id == active_group_id)
        if open_only:
            stmt = stmt.where(col(models.Visit.exit_time).is_(None))
        return self.session.exec(stmt.order_by(models.Visit.entry_time)).all()

    def list_by_student(self, student_id: int) -> List[models.Visit]:
        stmt = (
            select(models.Visit)
            .where(models.Visit.student_id == student_id)
            .order_by(col(models.Visit.entry_time).desc(), col(models.Visit.id).desc())
        )
        return self.session.exec(stmt).all()

    def count_open_in_group(self, active_group_id: int) -> int:
        stmt = select(func.count()).select_from(models.Visit).where(
            models.Visit.active_group_id == active_group_id,
            col(models.Visit.exit_time).is_(None),
        )
        return self.session.exec(stmt).one()

    def count_open_in_room(self, room_id: int) -> int:
        """Count open visits across all running sessions in a room."""
        stmt = (
            select(func.count())
            .select_from(models.Visit)
            .join(models.ActiveGroup, models.ActiveGroup.id == models.Visit.active_group_id)
            .where(
                models.ActiveGroup.room_id == room_id,
                col(models.ActiveGroup.end_time).is_(None),
                col(models.Visit.exit_time).is_(None),
            )
        )
        return self.session.exec(stmt).one()


class FeedbackRepository(_Repository):
    """Storage for student feedback entries."""

    def get(self, entry_id: int) -> Optional[models.FeedbackEntry]:
        return self.session.get(models.FeedbackEntry, entry_id)

    def list(
        self,
        student_id: Optional[int] = None,
        day: Optional[date] = None,
        is_mensa: Optional[bool] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[models.FeedbackEntry]:
        """Return entries matching every given filter, newest day first."""
        stmt = select(models.FeedbackEntry)
        if student_id is not None:
            stmt = stmt.where(models.FeedbackEntry.student_id == student_id)
        if day is not None:
            stmt = stmt.where(models.FeedbackEntry.day == day)
        if is_mensa is not None:
            stmt = stmt.where(models.FeedbackEntry.is_mensa_feedback == is_mensa)
        if start is not None:
            stmt = stmt.where(models.FeedbackEntry.day >= start)
        if end is not None:
            stmt = stmt.where(models.FeedbackEntry.day <= end)
        stmt = stmt.order_by(
            col(models.FeedbackEntry.day).desc(),
            col(models.FeedbackEntry.time).desc(),
            col(models.FeedbackEntry.id).desc(),
        )
        return self.session.exec(stmt).all()


class DeviceRepository(_Repository):
    def get(self, device_pk: int) -> Optional[models.Device]:
        return self.session.get(models.Device, device_pk)

    def get_by_device_id(self, device_id: str) -> Optional[models.Device]:
        stmt = select(models.Device).where(models.Device.device_id == device_id)
        return self.session.exec(stmt).first()

    def get_by_api_key(self, api_key: str) -> Optional[models.Device]:
        stmt = select(models.Device).where(models.Device.api_key == api_key)
        return self.session.exec(stmt).first()

    def list(self) -> List[models.Device]:
        return self.session.exec(select(models.Device).order_by(models.Device.device_id)).all()
