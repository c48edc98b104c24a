"""Business logic services used by HTTP controllers.

This module holds small service classes that coordinate repositories
and domain rules. Services are intentionally thin: they validate input,
execute domain logic and persist aggregates via repositories. Failures
are reported with the exceptions in `ogs.errors`, never with HTTP types.
"""

import logging
import secrets
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional, Tuple
from passlib.context import CryptContext
import jwt
from sqlmodel import Session
from . import errors, models, repositories
from .config import settings
from .schemas import FeedbackIn
from .utils.parsers import normalize_tag, parse_day, parse_time_of_day

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
ROLES = ("admin", "staff")
DEFAULT_SUPERVISOR_ROLE = "supervisor"

logger = logging.getLogger("ogs.services")


def _required(value: Optional[str], field: str) -> str:
    if value is None or not value.strip():
        raise errors.ValidationError(f"{field} is required")
    return value.strip()


class AuthService:
    """Account management and token issuing."""
    def __init__(self, session: Session):
        self.session = session
        self.account_repo = repositories.AccountRepository(session)
        self.person_repo = repositories.PersonRepository(session)
        self.staff_repo = repositories.StaffRepository(session)

    def create_account(self, email: str, password: str, role: str = "staff", person_id: Optional[int] = None) -> models.Account:
        """Create a new account with a hashed password.

        Returns the persisted `Account` instance.
        """
        email = _required(email, "email").lower()
        if not password or len(password) < 8:
            raise errors.ValidationError("password must be at least 8 characters")
        if role not in ROLES:
            raise errors.ValidationError(f"role must be one of {', '.join(ROLES)}")
        if person_id is not None and not self.person_repo.get(person_id):
            raise errors.PersonNotFoundError()
        if self.account_repo.get_by_email(email):
            raise errors.DuplicateEmailError()
        account = models.Account(email=email, password_hash=PWD_CTX.hash(password), role=role, person_id=person_id)
        saved = self.account_repo.insert_guarded(account)
        if saved is None:
            raise errors.DuplicateEmailError()
        return saved

    def authenticate(self, email: str, password: str):
        """Verify credentials and return a signed JWT token on success.

        Returns `None` if authentication fails or the account is disabled.
        """
        account = self.account_repo.get_by_email((email or "").strip().lower())
        if not account or not account.is_active:
            return None
        if not PWD_CTX.verify(password, account.password_hash):
            return None
        return self.issue_token(account)

    def issue_token(self, account: models.Account) -> str:
        expire = datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRE_HOURS)
        payload = {
            "account_id": account.id,
            "email": account.email,
            "role": account.role,
            "exp": int(expire.timestamp()),
        }
        return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)

    def staff_for_account(self, account: models.Account) -> Optional[models.Staff]:
        if account.person_id is None:
            return None
        return self.staff_repo.get_by_person(account.person_id)


class PersonService:
    """Students, staff and their RFID tags."""
    def __init__(self, session: Session):
        self.session = session
        self.person_repo = repositories.PersonRepository(session)
        self.student_repo = repositories.StudentRepository(session)
        self.staff_repo = repositories.StaffRepository(session)
        self.group_repo = repositories.EducationGroupRepository(session)
        self.visit_repo = repositories.VisitRepository(session)
        self.feedback_repo = repositories.FeedbackRepository(session)
        self.account_repo = repositories.AccountRepository(session)

    def _drop_person(self, person: models.Person) -> None:
        """Delete a person row, unlinking any login account that points at it."""
        for account in self.account_repo.list_by_person(person.id):
            account.person_id = None
            self.session.add(account)
        self.session.delete(person)

    def _new_person(self, first_name: str, last_name: str, tag_id: Optional[str]) -> models.Person:
        tag = normalize_tag(tag_id)
        if tag and self.person_repo.get_by_tag(tag):
            raise errors.DuplicateTagError()
        person = models.Person(
            first_name=_required(first_name, "first_name"),
            last_name=_required(last_name, "last_name"),
            tag_id=tag,
        )
        saved = self.person_repo.insert_guarded(person)
        if saved is None:
            raise errors.DuplicateTagError()
        return saved

    def get_person(self, person_id: int) -> models.Person:
        person = self.person_repo.get(person_id)
        if not person:
            raise errors.PersonNotFoundError()
        return person

    def find_by_tag(self, tag_id: str) -> models.Person:
        tag = normalize_tag(tag_id)
        person = self.person_repo.get_by_tag(tag) if tag else None
        if not person:
            raise errors.PersonNotFoundError("RFID tag not found")
        return person

    def assign_tag(self, person_id: int, tag_id: str) -> models.Person:
        """Link a tag to a person, unlinking it from any previous owner."""
        person = self.get_person(person_id)
        tag = normalize_tag(tag_id)
        if not tag:
            raise errors.ValidationError("tag_id is required")
        previous = self.person_repo.get_by_tag(tag)
        if previous and previous.id != person.id:
            logger.info("unlinking tag %s from person %s", tag, previous.id)
            previous.tag_id = None
            self.person_repo.save(previous)
        person.tag_id = tag
        return self.person_repo.save(person)

    def remove_tag(self, person_id: int) -> models.Person:
        person = self.get_person(person_id)
        if person.tag_id is None:
            raise errors.ValidationError("person has no RFID tag assigned")
        person.tag_id = None
        return self.person_repo.save(person)

    # students

    def create_student(self, first_name: str, last_name: str, school_class: str,
                       tag_id: Optional[str] = None, group_id: Optional[int] = None) -> models.Student:
        school_class = _required(school_class, "school_class")
        if group_id is not None and not self.group_repo.get(group_id):
            raise errors.GroupNotFoundError()
        person = self._new_person(first_name, last_name, tag_id)
        student = models.Student(person_id=person.id, school_class=school_class, group_id=group_id)
        return self.student_repo.save(student)

    def get_student(self, student_id: int) -> models.Student:
        student = self.student_repo.get(student_id)
        if not student:
            raise errors.StudentNotFoundError()
        return student

    def list_students(self, group_id: Optional[int] = None, search: Optional[str] = None) -> List[models.Student]:
        return self.student_repo.list(group_id=group_id, search=search)

    def update_student(self, student_id: int, **changes) -> models.Student:
        """Apply the given field changes (person or student fields)."""
        student = self.get_student(student_id)
        person = student.person
        for field in ("first_name", "last_name"):
            if changes.get(field) is not None:
                setattr(person, field, _required(changes[field], field))
        if changes.get("school_class") is not None:
            student.school_class = _required(changes["school_class"], "school_class")
        if "group_id" in changes:
            group_id = changes["group_id"]
            if group_id is not None and not self.group_repo.get(group_id):
                raise errors.GroupNotFoundError()
            student.group_id = group_id
        self.person_repo.save(person)
        return self.student_repo.save(student)

    def delete_student(self, student_id: int) -> None:
        """Delete a student together with its visits and feedback."""
        student = self.get_student(student_id)
        person = student.person
        for visit in self.visit_repo.list_by_student(student.id):
            self.session.delete(visit)
        for entry in self.feedback_repo.list(student_id=student.id):
            self.session.delete(entry)
        self.session.delete(student)
        self.session.flush()
        self._drop_person(person)
        self.session.commit()

    # staff

    def create_staff(self, first_name: str, last_name: str, tag_id: Optional[str] = None,
                     staff_notes: Optional[str] = None) -> models.Staff:
        person = self._new_person(first_name, last_name, tag_id)
        return self.staff_repo.save(models.Staff(person_id=person.id, staff_notes=staff_notes))

    def get_staff(self, staff_id: int) -> models.Staff:
        staff = self.staff_repo.get(staff_id)
        if not staff:
            raise errors.StaffNotFoundError()
        return staff

    def list_staff(self) -> List[models.Staff]:
        return self.staff_repo.list()

    def delete_staff(self, staff_id: int) -> None:
        staff = self.get_staff(staff_id)
        history = repositories.GroupSupervisorRepository(self.session).list_by_staff(staff.id)
        if any(sup.is_active for sup in history):
            raise errors.ConflictError("staff member is currently supervising an active group")
        for sup in history:
            self.session.delete(sup)
        person = staff.person
        self.session.delete(staff)
        self.session.flush()
        if person is not None:
            self._drop_person(person)
        self.session.commit()


class GroupService:
    """OGS education groups."""
    def __init__(self, session: Session):
        self.session = session
        self.group_repo = repositories.EducationGroupRepository(session)
        self.room_repo = repositories.RoomRepository(session)
        self.student_repo = repositories.StudentRepository(session)

    def _check_room(self, room_id: Optional[int]):
        if room_id is not None and not self.room_repo.get(room_id):
            raise errors.RoomNotFoundError()

    def create_group(self, name: str, room_id: Optional[int] = None) -> models.EducationGroup:
        name = _required(name, "name")
        self._check_room(room_id)
        if self.group_repo.get_by_name(name):
            raise errors.DuplicateNameError("group with this name already exists")
        saved = self.group_repo.insert_guarded(models.EducationGroup(name=name, room_id=room_id))
        if saved is None:
            raise errors.DuplicateNameError("group with this name already exists")
        return saved

    def get_group(self, group_id: int) -> models.EducationGroup:
        group = self.group_repo.get(group_id)
        if not group:
            raise errors.GroupNotFoundError()
        return group

    def list_groups(self) -> List[models.EducationGroup]:
        return self.group_repo.list()

    def update_group(self, group_id: int, name: Optional[str] = None, room_id: Optional[int] = None,
                     clear_room: bool = False) -> models.EducationGroup:
        group = self.get_group(group_id)
        if name is not None:
            name = _required(name, "name")
            other = self.group_repo.get_by_name(name)
            if other and other.id != group.id:
                raise errors.DuplicateNameError("group with this name already exists")
            group.name = name
        if clear_room:
            group.room_id = None
        elif room_id is not None:
            self._check_room(room_id)
            group.room_id = room_id
        return self.group_repo.save(group)

    def delete_group(self, group_id: int) -> None:
        group = self.get_group(group_id)
        for student in self.student_repo.list(group_id=group.id):
            student.group_id = None
            self.session.add(student)
        self.group_repo.delete(group)

    def list_students(self, group_id: int) -> List[models.Student]:
        group = self.get_group(group_id)
        return self.student_repo.list(group_id=group.id)


class FacilityService:
    """Rooms and their occupancy."""
    def __init__(self, session: Session):
        self.session = session
        self.room_repo = repositories.RoomRepository(session)
        self.active_repo = repositories.ActiveGroupRepository(session)

    @staticmethod
    def _validate_capacity(capacity: Optional[int]):
        if capacity is not None and capacity < 0:
            raise errors.ValidationError("capacity cannot be negative")

    def create_room(self, name: str, building: Optional[str] = None, floor: Optional[int] = None,
                    capacity: Optional[int] = None, category: Optional[str] = None,
                    color: Optional[str] = None) -> models.Room:
        name = _required(name, "name")
        self._validate_capacity(capacity)
        if self.room_repo.get_by_name(name):
            raise errors.DuplicateRoomError()
        room = models.Room(name=name, building=building, floor=floor, capacity=capacity, category=category, color=color)
        saved = self.room_repo.insert_guarded(room)
        if saved is None:
            raise errors.DuplicateRoomError()
        return saved

    def get_room(self, room_id: int) -> models.Room:
        room = self.room_repo.get(room_id)
        if not room:
            raise errors.RoomNotFoundError()
        return room

    def find_room_by_name(self, name: str) -> Optional[models.Room]:
        return self.room_repo.get_by_name(name)

    def list_rooms(self, building: Optional[str] = None, category: Optional[str] = None) -> List[models.Room]:
        return self.room_repo.list(building=building, category=category)

    def update_room(self, room_id: int, **changes) -> models.Room:
        room = self.get_room(room_id)
        if changes.get("name") is not None:
            name = _required(changes["name"], "name")
            other = self.room_repo.get_by_name(name)
            if other and other.id != room.id:
                raise errors.DuplicateRoomError()
            room.name = name
        if "capacity" in changes:
            self._validate_capacity(changes["capacity"])
        for field in ("building", "floor", "capacity", "category", "color"):
            if field in changes:
                setattr(room, field, changes[field])
        return self.room_repo.save(room)

    def delete_room(self, room_id: int) -> None:
        room = self.get_room(room_id)
        if self.active_repo.find_running_by_room(room.id):
            raise errors.ConflictError("room has an active group")
        if self.active_repo.count_by_room(room.id):
            raise errors.ConflictError("room has recorded sessions and cannot be deleted")
        self.room_repo.delete(room)

    def current_group(self, room_id: int) -> Optional[models.ActiveGroup]:
        """Return the running session occupying the room, if any."""
        running = self.active_repo.find_running_by_room(room_id)
        return running[0] if running else None


class ActivityService:
    """Activity categories and planned activity groups."""
    def __init__(self, session: Session):
        self.session = session
        self.category_repo = repositories.ActivityCategoryRepository(session)
        self.activity_repo = repositories.ActivityGroupRepository(session)
        self.room_repo = repositories.RoomRepository(session)

    def create_category(self, name: str, description: Optional[str] = None, color: Optional[str] = None) -> models.ActivityCategory:
        name = _required(name, "name")
        if self.category_repo.get_by_name(name):
            raise errors.DuplicateNameError("category with this name already exists")
        saved = self.category_repo.insert_guarded(models.ActivityCategory(name=name, description=description, color=color))
        if saved is None:
            raise errors.DuplicateNameError("category with this name already exists")
        return saved

    def list_categories(self) -> List[models.ActivityCategory]:
        return self.category_repo.list()

    def _check_refs(self, category_id: Optional[int], planned_room_id: Optional[int]):
        if category_id is not None and not self.category_repo.get(category_id):
            raise errors.CategoryNotFoundError()
        if planned_room_id is not None and not self.room_repo.get(planned_room_id):
            raise errors.RoomNotFoundError()

    @staticmethod
    def _check_max(max_participants: int):
        if max_participants is None or max_participants < 1:
            raise errors.ValidationError("max_participants must be at least 1")

    def create_activity(self, name: str, category_id: int, max_participants: int = 20, is_open: bool = False,
                        planned_room_id: Optional[int] = None) -> models.ActivityGroup:
        name = _required(name, "name")
        self._check_max(max_participants)
        self._check_refs(category_id, planned_room_id)
        if self.activity_repo.get_by_name(name):
            raise errors.DuplicateNameError("activity with this name already exists")
        activity = models.ActivityGroup(
            name=name,
            category_id=category_id,
            max_participants=max_participants,
            is_open=is_open,
            planned_room_id=planned_room_id,
        )
        saved = self.activity_repo.insert_guarded(activity)
        if saved is None:
            raise errors.DuplicateNameError("activity with this name already exists")
        return saved

    def get_activity(self, activity_id: int) -> models.ActivityGroup:
        activity = self.activity_repo.get(activity_id)
        if not activity:
            raise errors.ActivityNotFoundError()
        return activity

    def list_activities(self, name: Optional[str] = None) -> List[models.ActivityGroup]:
        return self.activity_repo.list(name=name)

    def update_activity(self, activity_id: int, **changes) -> models.ActivityGroup:
        activity = self.get_activity(activity_id)
        if changes.get("name") is not None:
            name = _required(changes["name"], "name")
            other = self.activity_repo.get_by_name(name)
            if other and other.id != activity.id:
                raise errors.DuplicateNameError("activity with this name already exists")
            activity.name = name
        if changes.get("max_participants") is not None:
            self._check_max(changes["max_participants"])
            activity.max_participants = changes["max_participants"]
        self._check_refs(changes.get("category_id"), changes.get("planned_room_id"))
        for field in ("category_id", "is_open"):
            if changes.get(field) is not None:
                setattr(activity, field, changes[field])
        if "planned_room_id" in changes:
            activity.planned_room_id = changes["planned_room_id"]
        return self.activity_repo.save(activity)

    def delete_activity(self, activity_id: int) -> None:
        activity = self.get_activity(activity_id)
        active_repo = repositories.ActiveGroupRepository(self.session)
        if active_repo.count_by_activity(activity.id):
            raise errors.ConflictError("activity has recorded sessions and cannot be deleted")
        self.activity_repo.delete(activity)


class ActiveService:
    """Running activity sessions, their supervisors and student visits."""
    def __init__(self, session: Session):
        self.session = session
        self.active_repo = repositories.ActiveGroupRepository(session)
        self.supervisor_repo = repositories.GroupSupervisorRepository(session)
        self.visit_repo = repositories.VisitRepository(session)
        self.activity_repo = repositories.ActivityGroupRepository(session)
        self.room_repo = repositories.RoomRepository(session)
        self.staff_repo = repositories.StaffRepository(session)
        self.student_repo = repositories.StudentRepository(session)
        self.device_repo = repositories.DeviceRepository(session)

    # active groups

    def create_active_group(self, group_id: int, room_id: int, start_time: Optional[datetime] = None,
                            device_id: Optional[int] = None) -> models.ActiveGroup:
        """Start a session of activity `group_id` in `room_id`.

        A room holds at most one running session; a second start raises
        `RoomConflictError`.
        """
        if not self.activity_repo.get(group_id):
            raise errors.ActivityNotFoundError()
        if not self.room_repo.get(room_id):
            raise errors.RoomNotFoundError()
        if device_id is not None and not self.device_repo.get(device_id):
            raise errors.DeviceNotFoundError()
        if self.active_repo.find_running_by_room(room_id):
            raise errors.RoomConflictError()
        now = datetime.now()
        active = models.ActiveGroup(
            group_id=group_id,
            room_id=room_id,
            start_time=start_time or now,
            last_activity=now,
            device_id=device_id,
        )
        saved = self.active_repo.insert_guarded(active)
        if saved is None:
            raise errors.RoomConflictError()
        return saved

    def get_active_group(self, active_group_id: int) -> models.ActiveGroup:
        active = self.active_repo.get(active_group_id)
        if not active:
            raise errors.ActiveGroupNotFoundError()
        return active

    def list_active_groups(self, running_only: bool = False) -> List[models.ActiveGroup]:
        return self.active_repo.list(running_only=running_only)

    def find_active_groups_by_room(self, room_id: int) -> List[models.ActiveGroup]:
        return self.active_repo.find_running_by_room(room_id)

    def end_active_group(self, active_group_id: int) -> models.ActiveGroup:
        """End a session, closing its open visits and running supervisions."""
        active = self.get_active_group(active_group_id)
        if not active.is_active:
            raise errors.ConflictError("active group already ended")
        now = datetime.now()
        for visit in self.visit_repo.list_by_group(active.id, open_only=True):
            visit.exit_time = now
            self.session.add(visit)
        for sup in self.supervisor_repo.list_by_group(active.id, running_only=True):
            sup.end_date = now
            self.session.add(sup)
        active.end_time = now
        return self.active_repo.save(active)

    def touch(self, active: models.ActiveGroup) -> None:
        active.last_activity = datetime.now()
        self.active_repo.save(active)

    # supervision

    def claim_active_group(self, active_group_id: int, staff_id: int,
                           role: str = DEFAULT_SUPERVISOR_ROLE) -> models.GroupSupervisor:
        active = self.get_active_group(active_group_id)
        if not active.is_active:
            raise errors.ConflictError("cannot claim ended group")
        if not self.staff_repo.get(staff_id):
            raise errors.StaffNotFoundError()
        if self.supervisor_repo.find_running(active.id, staff_id):
            raise errors.AlreadySupervisingError()
        sup = models.GroupSupervisor(
            group_id=active.id,
            staff_id=staff_id,
            role=(role or "").strip() or DEFAULT_SUPERVISOR_ROLE,
            start_date=datetime.now(),
        )
        saved = self.supervisor_repo.insert_guarded(sup)
        if saved is None:
            raise errors.AlreadySupervisingError()
        return saved

    def find_supervisors(self, active_group_id: int, running_only: bool = True) -> List[models.GroupSupervisor]:
        self.get_active_group(active_group_id)
        return self.supervisor_repo.list_by_group(active_group_id, running_only=running_only)

    def find_running_supervision(self, active_group_id: int, staff_id: int) -> Optional[models.GroupSupervisor]:
        return self.supervisor_repo.find_running(active_group_id, staff_id)

    def end_supervision(self, supervision_id: int) -> models.GroupSupervisor:
        sup = self.supervisor_repo.get(supervision_id)
        if not sup:
            raise errors.SupervisionNotFoundError()
        if not sup.is_active:
            raise errors.ConflictError("supervision already ended")
        sup.end_date = datetime.now()
        return self.supervisor_repo.save(sup)

    # visits

    def create_visit(self, student_id: int, active_group_id: int) -> models.Visit:
        if not self.student_repo.get(student_id):
            raise errors.StudentNotFoundError()
        active = self.get_active_group(active_group_id)
        if not active.is_active:
            raise errors.ConflictError("cannot check in to an ended group")
        if self.visit_repo.current_for_student(student_id):
            raise errors.StudentAlreadyCheckedInError()
        visit = models.Visit(student_id=student_id, active_group_id=active.id, entry_time=datetime.now())
        saved = self.visit_repo.insert_guarded(visit)
        if saved is None:
            raise errors.StudentAlreadyCheckedInError()
        return saved

    def end_visit(self, visit_id: int) -> models.Visit:
        visit = self.visit_repo.get(visit_id)
        if not visit:
            raise errors.VisitNotFoundError()
        if not visit.is_active:
            raise errors.ConflictError("visit already ended")
        visit.exit_time = datetime.now()
        return self.visit_repo.save(visit)

    def get_student_current_visit(self, student_id: int) -> Optional[models.Visit]:
        return self.visit_repo.current_for_student(student_id)

    def find_visits(self, active_group_id: int, open_only: bool = False) -> List[models.Visit]:
        self.get_active_group(active_group_id)
        return self.visit_repo.list_by_group(active_group_id, open_only=open_only)

    def find_student_visits(self, student_id: int) -> List[models.Visit]:
        if not self.student_repo.get(student_id):
            raise errors.StudentNotFoundError()
        return self.visit_repo.list_by_student(student_id)

    def count_open_visits(self, active_group_id: int) -> int:
        return self.visit_repo.count_open_in_group(active_group_id)

    def count_open_visits_in_room(self, room_id: int) -> int:
        return self.visit_repo.count_open_in_room(room_id)


class FeedbackService:
    """Student feedback entries (general and Mensa)."""
    def __init__(self, session: Session):
        self.session = session
        self.feedback_repo = repositories.FeedbackRepository(session)
        self.student_repo = repositories.StudentRepository(session)

    @staticmethod
    def validate(entry: FeedbackIn) -> Tuple[date, time]:
        """Check an incoming entry and return its parsed day and time."""
        if not entry.value or not entry.value.strip():
            raise errors.ValidationError("value is required")
        if entry.student_id is None or entry.student_id <= 0:
            raise errors.ValidationError("student_id is required")
        try:
            day = parse_day(entry.day)
            at = parse_time_of_day(entry.time)
        except ValueError as e:
            raise errors.ValidationError(str(e))
        return day, at

    def create_entry(self, entry: FeedbackIn) -> models.FeedbackEntry:
        day, at = self.validate(entry)
        if not self.student_repo.get(entry.student_id):
            raise errors.StudentNotFoundError()
        row = models.FeedbackEntry(
            value=entry.value.strip(),
            day=day,
            time=at,
            student_id=entry.student_id,
            is_mensa_feedback=entry.is_mensa_feedback,
        )
        return self.feedback_repo.save(row)

    def create_entries(self, entries: List[FeedbackIn]) -> Tuple[List[models.FeedbackEntry], List[str]]:
        """Create several entries.

        Every entry is validated up front; one malformed entry rejects the
        whole batch. Entries that fail afterwards (unknown student) are
        reported per index while the rest are stored.
        """
        if not entries:
            raise errors.ValidationError("at least one feedback entry is required")
        if len(entries) > settings.MAX_BATCH_FEEDBACK:
            raise errors.ValidationError(f"at most {settings.MAX_BATCH_FEEDBACK} entries per batch")
        for i, entry in enumerate(entries):
            try:
                self.validate(entry)
            except errors.ValidationError as e:
                raise errors.ValidationError(f"invalid entry at index {i}: {e}")
        created, failures = [], []
        for i, entry in enumerate(entries):
            try:
                created.append(self.create_entry(entry))
            except errors.NotFoundError as e:
                failures.append(f"entry {i}: {e}")
        return created, failures

    def get_entry(self, entry_id: int) -> models.FeedbackEntry:
        entry = self.feedback_repo.get(entry_id)
        if not entry:
            raise errors.EntryNotFoundError()
        return entry

    def delete_entry(self, entry_id: int) -> None:
        self.feedback_repo.delete(self.get_entry(entry_id))

    def list_entries(self, student_id: Optional[int] = None, day: Optional[date] = None,
                     is_mensa: Optional[bool] = None) -> List[models.FeedbackEntry]:
        return self.feedback_repo.list(student_id=student_id, day=day, is_mensa=is_mensa)

    def get_entries_by_student(self, student_id: int) -> List[models.FeedbackEntry]:
        return self.feedback_repo.list(student_id=student_id)

    def get_entries_by_day(self, day: date) -> List[models.FeedbackEntry]:
        return self.feedback_repo.list(day=day)

    def get_mensa_feedback(self, is_mensa: bool = True) -> List[models.FeedbackEntry]:
        return self.feedback_repo.list(is_mensa=is_mensa)

    def get_entries_by_date_range(self, start: date, end: date, student_id: Optional[int] = None) -> List[models.FeedbackEntry]:
        if end < start:
            raise errors.ValidationError("end_date must not be before start_date")
        return self.feedback_repo.list(student_id=student_id, start=start, end=end)


class DeviceService:
    """Registration and key checks for RFID readers."""
    def __init__(self, session: Session):
        self.session = session
        self.device_repo = repositories.DeviceRepository(session)

    def register(self, device_id: str, name: Optional[str] = None) -> models.Device:
        device_id = _required(device_id, "device_id")
        if self.device_repo.get_by_device_id(device_id):
            raise errors.DuplicateNameError("device already registered")
        device = models.Device(device_id=device_id, name=name, api_key=secrets.token_urlsafe(32))
        saved = self.device_repo.insert_guarded(device)
        if saved is None:
            raise errors.DuplicateNameError("device already registered")
        return saved

    def list_devices(self) -> List[models.Device]:
        return self.device_repo.list()

    def authenticate(self, api_key: Optional[str]) -> models.Device:
        if not api_key:
            raise errors.AuthenticationError("device API key required")
        device = self.device_repo.get_by_api_key(api_key)
        if not device:
            raise errors.AuthenticationError("invalid device API key")
        if device.status != "active":
            raise errors.PermissionDeniedError("device is not active")
        return device

    def touch(self, device: models.Device) -> None:
        device.last_seen = datetime.now()
        self.device_repo.save(device)
