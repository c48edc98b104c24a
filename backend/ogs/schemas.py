"""Pydantic request schemas used by the API.

Schemas keep API input shapes stable and provide validation for
controller handlers and tests. Field-level business rules (non-empty
names, date formats, allowed actions) are checked in the services so the
same rules apply to scripts and HTTP callers.
"""

from datetime import datetime
from pydantic import BaseModel, Field
from typing import List, Optional


class LoginIn(BaseModel):
    email: str
    password: str


class TokenOut(BaseModel):
    """Authentication response containing an access token."""
    access_token: str
    token_type: str = "bearer"


class AccountIn(BaseModel):
    email: str
    password: str
    role: str = "staff"
    person_id: Optional[int] = None


class RoomIn(BaseModel):
    name: str
    building: Optional[str] = None
    floor: Optional[int] = None
    capacity: Optional[int] = None
    category: Optional[str] = None
    color: Optional[str] = None


class RoomUpdate(BaseModel):
    name: Optional[str] = None
    building: Optional[str] = None
    floor: Optional[int] = None
    capacity: Optional[int] = None
    category: Optional[str] = None
    color: Optional[str] = None


class GroupIn(BaseModel):
    name: str
    room_id: Optional[int] = None


class GroupUpdate(BaseModel):
    name: Optional[str] = None
    room_id: Optional[int] = None


class CategoryIn(BaseModel):
    name: str
    description: Optional[str] = None
    color: Optional[str] = None


class ActivityIn(BaseModel):
    name: str
    category_id: int
    max_participants: int = 20
    is_open: bool = False
    planned_room_id: Optional[int] = None


class ActivityUpdate(BaseModel):
    name: Optional[str] = None
    category_id: Optional[int] = None
    max_participants: Optional[int] = None
    is_open: Optional[bool] = None
    planned_room_id: Optional[int] = None


class StudentIn(BaseModel):
    first_name: str
    last_name: str
    school_class: str
    tag_id: Optional[str] = None
    group_id: Optional[int] = None


class StudentUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    school_class: Optional[str] = None
    group_id: Optional[int] = None


class StaffIn(BaseModel):
    first_name: str
    last_name: str
    tag_id: Optional[str] = None
    staff_notes: Optional[str] = None


class TagIn(BaseModel):
    tag_id: str


class ActiveGroupIn(BaseModel):
    group_id: int
    room_id: int
    start_time: Optional[datetime] = None
    device_id: Optional[int] = None


class ClaimIn(BaseModel):
    role: str = "supervisor"


class VisitIn(BaseModel):
    student_id: int
    active_group_id: int


class SchulhofToggleIn(BaseModel):
    """Body of the Schulhof supervise endpoint; `action` is `start` or `stop`."""
    action: str


class DeviceIn(BaseModel):
    device_id: str
    name: Optional[str] = None


class CheckinIn(BaseModel):
    """RFID scan posted by a reader.

    `action` must be `checkin` or `checkout` but the outcome is decided by
    the student's current visit, not by this field.
    """
    student_rfid: str
    action: str
    room_id: Optional[int] = None


class FeedbackIn(BaseModel):
    """A single feedback entry; strings are parsed by `FeedbackService`."""
    value: Optional[str] = None
    day: Optional[str] = None
    time: Optional[str] = None
    student_id: Optional[int] = None
    is_mensa_feedback: bool = False


class FeedbackBatchIn(BaseModel):
    entries: List[FeedbackIn] = Field(default_factory=list)
