"""RFID check-in and check-out for readers.

A scan toggles the student's attendance: an open visit is closed, and
when the scan names a different room the student is checked in there
(a transfer). Scanning in the room the student is already in is a
plain checkout.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from sqlmodel import Session
from . import errors, models, repositories
from .schulhof import ROOM_NAME as SCHULHOF_ROOM_NAME, SchulhofService
from .services import ActiveService, DeviceService, FacilityService, PersonService

ACTIONS = ("checkin", "checkout")

LOG_PREFIX = "[CHECKIN]"
logger = logging.getLogger("ogs.checkin")


@dataclass
class CheckinResult:
    student_id: int
    student_name: str
    action: str
    message: str
    processed_at: datetime
    visit_id: Optional[int] = None
    room_name: Optional[str] = None
    previous_room: Optional[str] = None
    status: str = "success"


class CheckinService:
    def __init__(self, session: Session):
        self.session = session
        self.people = PersonService(session)
        self.facilities = FacilityService(session)
        self.active = ActiveService(session)
        self.devices = DeviceService(session)
        self.schulhof = SchulhofService(session)
        self.activity_repo = repositories.ActivityGroupRepository(session)

    def _student_for_tag(self, tag: str) -> models.Student:
        person = self.people.find_by_tag(tag)
        student = self.people.student_repo.get_by_person(person.id)
        if student:
            return student
        if self.people.staff_repo.get_by_person(person.id):
            raise errors.NotFoundError("staff RFID authentication must be done via session management endpoints")
        raise errors.NotFoundError("person is neither student nor staff")

    def _session_for_room(self, room: models.Room) -> models.ActiveGroup:
        running = self.active.find_active_groups_by_room(room.id)
        if running:
            return running[0]
        if room.name == SCHULHOF_ROOM_NAME:
            logger.info("%s No active group in Schulhof room %s, auto-creating...", LOG_PREFIX, room.id)
            return self.schulhof.get_or_create_active_group()
        raise errors.NotFoundError("no active groups in specified room")

    def _check_in(self, student: models.Student, room_id: int) -> tuple:
        room = self.facilities.get_room(room_id)
        if room.capacity is not None and self.active.count_open_visits_in_room(room.id) >= room.capacity:
            raise errors.CapacityExceededError(f"room {room.name} is at capacity ({room.capacity})")
        target = self._session_for_room(room)
        activity = self.activity_repo.get(target.group_id)
        if activity and self.active.count_open_visits(target.id) >= activity.max_participants:
            raise errors.CapacityExceededError(
                f"activity {activity.name} is at capacity ({activity.max_participants})"
            )
        visit = self.active.create_visit(student.id, target.id)
        return visit, room

    def process(self, student_rfid: str, action: str, room_id: Optional[int] = None,
                device: Optional[models.Device] = None) -> CheckinResult:
        """Handle one scan and describe what happened."""
        if action not in ACTIONS:
            raise errors.ValidationError("action must be 'checkin' or 'checkout'")
        student = self._student_for_tag(student_rfid)
        first_name = student.person.first_name
        logger.info("%s Scan for student %s (room %s)", LOG_PREFIX, student.id, room_id)

        checked_out = None
        previous_room = None
        current = self.active.get_student_current_visit(student.id)
        if current:
            previous_session = self.active.get_active_group(current.active_group_id)
            previous_room = self.facilities.get_room(previous_session.room_id)
            checked_out = self.active.end_visit(current.id)
            logger.info("%s Checked out student %s from %s", LOG_PREFIX, student.id, previous_room.name)

        same_room = previous_room is not None and room_id == previous_room.id
        if room_id is not None and not same_room:
            visit, room = self._check_in(student, room_id)
            logger.info("%s Checked in student %s to %s", LOG_PREFIX, student.id, room.name)
            if checked_out:
                action_taken = "transferred"
                message = f"Gewechselt von {previous_room.name} zu {room.name}!"
            else:
                action_taken = "checked_in"
                message = f"Hallo {first_name}!"
            result = CheckinResult(
                student_id=student.id,
                student_name=student.person.full_name,
                action=action_taken,
                message=message,
                processed_at=datetime.now(),
                visit_id=visit.id,
                room_name=room.name,
                previous_room=previous_room.name if checked_out else None,
            )
        elif checked_out:
            result = CheckinResult(
                student_id=student.id,
                student_name=student.person.full_name,
                action="checked_out",
                message=f"Tschüss {first_name}!",
                processed_at=datetime.now(),
                visit_id=checked_out.id,
                room_name=previous_room.name,
            )
        else:
            raise errors.ValidationError("room_id is required for check-in")

        if device is not None:
            for running in self.active.active_repo.find_running_by_device(device.id):
                self.active.touch(running)
            self.devices.touch(device)
        return result
