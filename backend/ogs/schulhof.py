"""Schulhof (schoolyard) supervision.

The Schulhof is a permanent outdoor area that has no planned activity.
Its room, activity category and activity group are provisioned on first
use, one active group is opened per calendar day, and staff members
start or stop supervising that session.

Every provisioning step is an idempotent ensure: look the row up by its
unique name, insert it inside a savepoint when missing, and look it up
again if a concurrent writer won the insert.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, time
from typing import Callable, List, Optional
from sqlmodel import Session
from . import errors, models, repositories
from .services import ActiveService, DEFAULT_SUPERVISOR_ROLE

ROOM_NAME = "Schulhof"
ROOM_CAPACITY = 100
ROOM_CATEGORY = "Schulhof"
ROOM_COLOR = "#7ED321"
CATEGORY_NAME = "Schulhof"
CATEGORY_DESCRIPTION = "Schulhof und Außenbereich"
ACTIVITY_NAME = "Schulhof"
ACTIVITY_MAX_PARTICIPANTS = 100

ACTION_START = "start"
ACTION_STOP = "stop"

LOG_PREFIX = "[SCHULHOF]"
logger = logging.getLogger("ogs.schulhof")


def start_of_today() -> datetime:
    return datetime.combine(datetime.now().date(), time.min)


@dataclass
class SupervisorInfo:
    id: int
    staff_id: int
    name: str
    is_current_user: bool


@dataclass
class SchulhofStatus:
    exists: bool = False
    room_id: Optional[int] = None
    room_name: str = ROOM_NAME
    activity_group_id: Optional[int] = None
    active_group_id: Optional[int] = None
    is_user_supervising: bool = False
    supervision_id: Optional[int] = None
    supervisor_count: int = 0
    student_count: int = 0
    supervisors: List[SupervisorInfo] = field(default_factory=list)


@dataclass
class SupervisionResult:
    action: str
    active_group_id: int
    supervision_id: Optional[int] = None


class SchulhofService:
    def __init__(self, session: Session):
        self.session = session
        self.room_repo = repositories.RoomRepository(session)
        self.category_repo = repositories.ActivityCategoryRepository(session)
        self.activity_repo = repositories.ActivityGroupRepository(session)
        self.active_repo = repositories.ActiveGroupRepository(session)
        self.active = ActiveService(session)

    def _ensure(self, repo, find: Callable[[], Optional[object]], build: Callable[[], object], what: str):
        existing = find()
        if existing:
            return existing
        created = repo.insert_guarded(build())
        if created is not None:
            logger.info("%s Created %s (id %s)", LOG_PREFIX, what, created.id)
            return created
        # lost the race against another writer; its row is now visible
        existing = find()
        if existing is None:
            raise errors.ConflictError(f"failed to ensure Schulhof {what}")
        return existing

    def ensure_room(self) -> models.Room:
        return self._ensure(
            self.room_repo,
            lambda: self.room_repo.get_by_name(ROOM_NAME),
            lambda: models.Room(name=ROOM_NAME, capacity=ROOM_CAPACITY, category=ROOM_CATEGORY, color=ROOM_COLOR),
            "room",
        )

    def ensure_category(self) -> models.ActivityCategory:
        return self._ensure(
            self.category_repo,
            lambda: self.category_repo.get_by_name(CATEGORY_NAME),
            lambda: models.ActivityCategory(name=CATEGORY_NAME, description=CATEGORY_DESCRIPTION, color=ROOM_COLOR),
            "category",
        )

    def ensure_infrastructure(self) -> models.ActivityGroup:
        """Make sure the Schulhof room, category and activity group exist.

        Safe to call any number of times; returns the activity group.
        """
        activity = self.activity_repo.get_by_name(ACTIVITY_NAME)
        if activity:
            return activity
        logger.info("%s Infrastructure not found, auto-creating...", LOG_PREFIX)
        room = self.ensure_room()
        category = self.ensure_category()
        return self._ensure(
            self.activity_repo,
            lambda: self.activity_repo.get_by_name(ACTIVITY_NAME),
            lambda: models.ActivityGroup(
                name=ACTIVITY_NAME,
                max_participants=ACTIVITY_MAX_PARTICIPANTS,
                is_open=True,
                category_id=category.id,
                planned_room_id=room.id,
            ),
            "activity group",
        )

    def _room_for(self, activity: models.ActivityGroup) -> models.Room:
        if activity.planned_room_id is not None:
            room = self.room_repo.get(activity.planned_room_id)
            if room:
                return room
        return self.ensure_room()

    def _todays_session(self, activity: models.ActivityGroup, room: models.Room) -> Optional[models.ActiveGroup]:
        return self.active_repo.find_running_since(activity.id, room.id, start_of_today())

    def get_or_create_active_group(self) -> models.ActiveGroup:
        """Return today's running Schulhof session, opening one if needed.

        Schulhof sessions left running from an earlier day are ended first so
        the room is free for today's session. A session of another activity
        still holding the room is left alone and raises `RoomConflictError`.
        """
        activity = self.ensure_infrastructure()
        room = self._room_for(activity)
        current = self._todays_session(activity, room)
        if current:
            return current
        for stale in self.active_repo.find_running_before(activity.id, room.id, start_of_today()):
            logger.info("%s Ending stale session %s from %s", LOG_PREFIX, stale.id, stale.start_time.date())
            self.active.end_active_group(stale.id)
        now = datetime.now()
        created = self.active_repo.insert_guarded(
            models.ActiveGroup(group_id=activity.id, room_id=room.id, start_time=now, last_activity=now)
        )
        if created is not None:
            logger.info("%s Created active group %s", LOG_PREFIX, created.id)
            return created
        current = self._todays_session(activity, room)
        if current is None:
            raise errors.RoomConflictError("Schulhof room is occupied by another active group")
        return current

    def get_status(self, staff_id: Optional[int]) -> SchulhofStatus:
        """Describe the Schulhof without provisioning anything."""
        status = SchulhofStatus()
        room = self.room_repo.get_by_name(ROOM_NAME)
        if not room:
            logger.debug("%s Room not found, infrastructure not yet created", LOG_PREFIX)
            return status
        status.exists = True
        status.room_id = room.id
        activity = self.activity_repo.get_by_name(ACTIVITY_NAME)
        if not activity:
            return status
        status.activity_group_id = activity.id
        current = self._todays_session(activity, room)
        if not current:
            return status
        status.active_group_id = current.id
        for sup in self.active.find_supervisors(current.id, running_only=True):
            is_me = staff_id is not None and sup.staff_id == staff_id
            person = sup.staff.person if sup.staff else None
            status.supervisors.append(SupervisorInfo(
                id=sup.id,
                staff_id=sup.staff_id,
                name=person.full_name if person else "",
                is_current_user=is_me,
            ))
            if is_me:
                status.is_user_supervising = True
                status.supervision_id = sup.id
        status.supervisor_count = len(status.supervisors)
        status.student_count = self.active.count_open_visits(current.id)
        return status

    def toggle_supervision(self, staff_id: int, action: str) -> SupervisionResult:
        """Start or stop the caller's supervision of today's session."""
        if action not in (ACTION_START, ACTION_STOP):
            raise errors.ValidationError("action must be 'start' or 'stop'")
        current = self.get_or_create_active_group()
        if action == ACTION_START:
            sup = self.active.claim_active_group(current.id, staff_id, DEFAULT_SUPERVISOR_ROLE)
            logger.info("%s Staff %s started supervising group %s", LOG_PREFIX, staff_id, current.id)
            return SupervisionResult(action="started", active_group_id=current.id, supervision_id=sup.id)
        sup = self.active.find_running_supervision(current.id, staff_id)
        if not sup:
            raise errors.NotSupervisingError()
        self.active.end_supervision(sup.id)
        logger.info("%s Staff %s stopped supervising group %s", LOG_PREFIX, staff_id, current.id)
        return SupervisionResult(action="stopped", active_group_id=current.id, supervision_id=sup.id)
