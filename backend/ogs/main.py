"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the OGS backend. Controllers
are intentionally thin: they accept requests, delegate to services, and
return JSON responses in the `{"status", "data", "message"}` envelope.
Domain errors raised anywhere below are rendered by one handler as
`{"status": "error", "error": ...}` with the status code they carry.

Endpoint groups:
- /auth       login, current account, account creation
- /rooms      rooms with occupancy
- /groups     OGS groups and their students
- /students, /staff, /persons/{id}/rfid
- /activities categories and activity groups
- /active     active groups, supervision, visits, Schulhof
- /iot        device registration and RFID check-in
- /feedback   student feedback
"""

from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import Session
from typing import Optional
import json
import logging
import time
import uuid
from .database import create_db_and_tables, get_session
from . import models, schemas
from .auth import get_current_account, get_device, require_admin, require_staff
from .checkin import CheckinService
from .config import settings
from .errors import DomainError, ValidationError
from .schulhof import ACTION_START, SchulhofService
from .services import (
    ActiveService,
    ActivityService,
    AuthService,
    DeviceService,
    FacilityService,
    FeedbackService,
    GroupService,
    PersonService,
)
from .utils.parsers import parse_bool_flag, parse_day

app = FastAPI(title="OGS Backend API")
logger = logging.getLogger("ogs.api")
if not logger.handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)

if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

create_db_and_tables()


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                    "client": request.client.host if request.client else "unknown",
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    logger.info(
        "request_done %s",
        json.dumps(
            {
                "request_id": req_id,
                "path": request.url.path,
                "method": request.method,
                "status_code": response.status_code,
                "duration_ms": elapsed_ms,
                "client": request.client.host if request.client else "unknown",
            },
            ensure_ascii=True,
        ),
    )
    return response


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    if exc.status_code >= 500:
        logger.error("domain_error %s %s", request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"status": "error", "error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    problems = exc.errors()
    if problems:
        first = problems[0]
        loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        message = f"{loc}: {first.get('msg')}" if loc else str(first.get("msg"))
    else:
        message = "invalid request"
    return JSONResponse(status_code=400, content={"status": "error", "error": message})


def respond(data=None, message: Optional[str] = None, status_code: int = 200):
    body = {"status": "success", "data": data}
    if message:
        body["message"] = message
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def _person_out(person: models.Person):
    return {
        "id": person.id,
        "first_name": person.first_name,
        "last_name": person.last_name,
        "tag_id": person.tag_id,
    }


def _student_out(student: models.Student):
    person = student.person
    return {
        "id": student.id,
        "person_id": student.person_id,
        "first_name": person.first_name,
        "last_name": person.last_name,
        "tag_id": person.tag_id,
        "school_class": student.school_class,
        "group_id": student.group_id,
    }


def _staff_out(staff: models.Staff):
    person = staff.person
    return {
        "id": staff.id,
        "person_id": staff.person_id,
        "first_name": person.first_name,
        "last_name": person.last_name,
        "tag_id": person.tag_id,
        "staff_notes": staff.staff_notes,
    }


def _room_out(room: models.Room, current: Optional[models.ActiveGroup] = None):
    out = {
        "id": room.id,
        "name": room.name,
        "building": room.building,
        "floor": room.floor,
        "capacity": room.capacity,
        "category": room.category,
        "color": room.color,
        "is_occupied": current is not None,
    }
    if current is not None:
        out["active_group_id"] = current.id
        out["group_name"] = current.activity.name if current.activity else None
    return out


def _group_out(group: models.EducationGroup):
    return {"id": group.id, "name": group.name, "room_id": group.room_id}


def _category_out(category: models.ActivityCategory):
    return {"id": category.id, "name": category.name, "description": category.description, "color": category.color}


def _activity_out(activity: models.ActivityGroup):
    return {
        "id": activity.id,
        "name": activity.name,
        "max_participants": activity.max_participants,
        "is_open": activity.is_open,
        "category_id": activity.category_id,
        "planned_room_id": activity.planned_room_id,
    }


def _active_out(active: models.ActiveGroup):
    return {
        "id": active.id,
        "group_id": active.group_id,
        "group_name": active.activity.name if active.activity else None,
        "room_id": active.room_id,
        "room_name": active.room.name if active.room else None,
        "start_time": active.start_time,
        "end_time": active.end_time,
        "last_activity": active.last_activity,
        "device_id": active.device_id,
        "is_active": active.is_active,
    }


def _supervisor_out(sup: models.GroupSupervisor):
    person = sup.staff.person if sup.staff else None
    return {
        "id": sup.id,
        "group_id": sup.group_id,
        "staff_id": sup.staff_id,
        "name": person.full_name if person else None,
        "role": sup.role,
        "start_date": sup.start_date,
        "end_date": sup.end_date,
        "is_active": sup.is_active,
    }


def _visit_out(visit: models.Visit):
    active = visit.active_group
    return {
        "id": visit.id,
        "student_id": visit.student_id,
        "active_group_id": visit.active_group_id,
        "room_name": active.room.name if active and active.room else None,
        "entry_time": visit.entry_time,
        "exit_time": visit.exit_time,
        "is_active": visit.is_active,
    }


def _feedback_out(entry: models.FeedbackEntry):
    out = {
        "id": entry.id,
        "value": entry.value,
        "day": entry.day.isoformat(),
        "time": entry.time.strftime("%H:%M:%S"),
        "student_id": entry.student_id,
        "is_mensa_feedback": entry.is_mensa_feedback,
        "created_at": entry.created_at,
        "updated_at": entry.updated_at,
    }
    if entry.student and entry.student.person:
        out["student"] = {
            "id": entry.student.id,
            "first_name": entry.student.person.first_name,
            "last_name": entry.student.person.last_name,
        }
    return out


def _device_out(device: models.Device, include_key: bool = False):
    out = {
        "id": device.id,
        "device_id": device.device_id,
        "name": device.name,
        "status": device.status,
        "last_seen": device.last_seen,
    }
    if include_key:
        out["api_key"] = device.api_key
    return out


def _day_param(value: str, field: str = "date"):
    try:
        return parse_day(value)
    except ValueError:
        raise ValidationError(f"invalid {field} format, expected YYYY-MM-DD")


@app.get("/health")
def health():
    """Basic liveness endpoint used by monitoring and tests."""
    return {"status": "ok"}


# auth

@app.post('/auth/login')
def login(payload: schemas.LoginIn, db: Session = Depends(get_session)):
    """Authenticate an account and return a short-lived JWT token.

    Invalid credentials produce a 401.
    """
    token = AuthService(db).authenticate(payload.email, payload.password)
    if not token:
        raise HTTPException(status_code=401, detail='invalid credentials')
    return schemas.TokenOut(access_token=token)


@app.get('/auth/me')
def me(account: models.Account = Depends(get_current_account), db: Session = Depends(get_session)):
    staff = AuthService(db).staff_for_account(account)
    return respond({
        "id": account.id,
        "email": account.email,
        "role": account.role,
        "person_id": account.person_id,
        "is_staff": staff is not None,
        "staff_id": staff.id if staff else None,
    })


@app.post('/auth/accounts', status_code=201)
def create_account(payload: schemas.AccountIn, db: Session = Depends(get_session), admin=Depends(require_admin)):
    account = AuthService(db).create_account(payload.email, payload.password, payload.role, payload.person_id)
    data = {"id": account.id, "email": account.email, "role": account.role, "person_id": account.person_id}
    return respond(data, "Account created successfully", status_code=201)


# rooms

@app.get('/rooms')
def list_rooms(building: Optional[str] = None, category: Optional[str] = None,
               db: Session = Depends(get_session), account=Depends(get_current_account)):
    svc = FacilityService(db)
    rooms = svc.list_rooms(building=building, category=category)
    return respond([_room_out(r, svc.current_group(r.id)) for r in rooms], "Rooms retrieved successfully")


@app.get('/rooms/{room_id}')
def get_room(room_id: int, db: Session = Depends(get_session), account=Depends(get_current_account)):
    svc = FacilityService(db)
    room = svc.get_room(room_id)
    return respond(_room_out(room, svc.current_group(room.id)), "Room retrieved successfully")


@app.post('/rooms', status_code=201)
def create_room(payload: schemas.RoomIn, db: Session = Depends(get_session), admin=Depends(require_admin)):
    room = FacilityService(db).create_room(**payload.model_dump())
    return respond(_room_out(room), "Room created successfully", status_code=201)


@app.put('/rooms/{room_id}')
def update_room(room_id: int, payload: schemas.RoomUpdate, db: Session = Depends(get_session), admin=Depends(require_admin)):
    room = FacilityService(db).update_room(room_id, **payload.model_dump(exclude_unset=True))
    return respond(_room_out(room), "Room updated successfully")


@app.delete('/rooms/{room_id}')
def delete_room(room_id: int, db: Session = Depends(get_session), admin=Depends(require_admin)):
    FacilityService(db).delete_room(room_id)
    return respond(None, "Room deleted successfully")


# groups

@app.get('/groups')
def list_groups(db: Session = Depends(get_session), account=Depends(get_current_account)):
    return respond([_group_out(g) for g in GroupService(db).list_groups()], "Groups retrieved successfully")


@app.get('/groups/{group_id}')
def get_group(group_id: int, db: Session = Depends(get_session), account=Depends(get_current_account)):
    return respond(_group_out(GroupService(db).get_group(group_id)), "Group retrieved successfully")


@app.post('/groups', status_code=201)
def create_group(payload: schemas.GroupIn, db: Session = Depends(get_session), admin=Depends(require_admin)):
    group = GroupService(db).create_group(payload.name, payload.room_id)
    return respond(_group_out(group), "Group created successfully", status_code=201)


@app.put('/groups/{group_id}')
def update_group(group_id: int, payload: schemas.GroupUpdate, db: Session = Depends(get_session), admin=Depends(require_admin)):
    changes = payload.model_dump(exclude_unset=True)
    clear_room = "room_id" in changes and changes["room_id"] is None
    group = GroupService(db).update_group(group_id, name=changes.get("name"), room_id=changes.get("room_id"), clear_room=clear_room)
    return respond(_group_out(group), "Group updated successfully")


@app.delete('/groups/{group_id}')
def delete_group(group_id: int, db: Session = Depends(get_session), admin=Depends(require_admin)):
    GroupService(db).delete_group(group_id)
    return respond(None, "Group deleted successfully")


@app.get('/groups/{group_id}/students')
def group_students(group_id: int, db: Session = Depends(get_session), account=Depends(get_current_account)):
    students = GroupService(db).list_students(group_id)
    return respond([_student_out(s) for s in students], "Group students retrieved successfully")


# students and staff

@app.get('/students')
def list_students(group_id: Optional[int] = None, search: Optional[str] = None,
                  db: Session = Depends(get_session), account=Depends(get_current_account)):
    students = PersonService(db).list_students(group_id=group_id, search=search)
    return respond([_student_out(s) for s in students], "Students retrieved successfully")


@app.get('/students/{student_id}')
def get_student(student_id: int, db: Session = Depends(get_session), account=Depends(get_current_account)):
    return respond(_student_out(PersonService(db).get_student(student_id)), "Student retrieved successfully")


@app.post('/students', status_code=201)
def create_student(payload: schemas.StudentIn, db: Session = Depends(get_session), admin=Depends(require_admin)):
    student = PersonService(db).create_student(**payload.model_dump())
    return respond(_student_out(student), "Student created successfully", status_code=201)


@app.put('/students/{student_id}')
def update_student(student_id: int, payload: schemas.StudentUpdate, db: Session = Depends(get_session), admin=Depends(require_admin)):
    student = PersonService(db).update_student(student_id, **payload.model_dump(exclude_unset=True))
    return respond(_student_out(student), "Student updated successfully")


@app.delete('/students/{student_id}')
def delete_student(student_id: int, db: Session = Depends(get_session), admin=Depends(require_admin)):
    PersonService(db).delete_student(student_id)
    return respond(None, "Student deleted successfully")


@app.get('/students/{student_id}/current-visit')
def student_current_visit(student_id: int, db: Session = Depends(get_session), account=Depends(get_current_account)):
    PersonService(db).get_student(student_id)
    visit = ActiveService(db).get_student_current_visit(student_id)
    if visit is None:
        return respond(None, "Student is not checked in")
    return respond(_visit_out(visit), "Current visit retrieved successfully")


@app.get('/students/{student_id}/visits')
def student_visits(student_id: int, db: Session = Depends(get_session), account=Depends(get_current_account)):
    visits = ActiveService(db).find_student_visits(student_id)
    return respond([_visit_out(v) for v in visits], "Visits retrieved successfully")


@app.get('/staff')
def list_staff(db: Session = Depends(get_session), account=Depends(get_current_account)):
    return respond([_staff_out(s) for s in PersonService(db).list_staff()], "Staff retrieved successfully")


@app.get('/staff/{staff_id}')
def get_staff(staff_id: int, db: Session = Depends(get_session), account=Depends(get_current_account)):
    return respond(_staff_out(PersonService(db).get_staff(staff_id)), "Staff member retrieved successfully")


@app.post('/staff', status_code=201)
def create_staff(payload: schemas.StaffIn, db: Session = Depends(get_session), admin=Depends(require_admin)):
    staff = PersonService(db).create_staff(**payload.model_dump())
    return respond(_staff_out(staff), "Staff member created successfully", status_code=201)


@app.delete('/staff/{staff_id}')
def delete_staff(staff_id: int, db: Session = Depends(get_session), admin=Depends(require_admin)):
    PersonService(db).delete_staff(staff_id)
    return respond(None, "Staff member deleted successfully")


@app.put('/persons/{person_id}/rfid')
def assign_rfid(person_id: int, payload: schemas.TagIn, db: Session = Depends(get_session), admin=Depends(require_admin)):
    person = PersonService(db).assign_tag(person_id, payload.tag_id)
    return respond(_person_out(person), "RFID tag assigned successfully")


@app.delete('/persons/{person_id}/rfid')
def remove_rfid(person_id: int, db: Session = Depends(get_session), admin=Depends(require_admin)):
    person = PersonService(db).remove_tag(person_id)
    return respond(_person_out(person), "RFID tag removed successfully")


# activities

@app.get('/activities/categories')
def list_categories(db: Session = Depends(get_session), account=Depends(get_current_account)):
    cats = ActivityService(db).list_categories()
    return respond([_category_out(c) for c in cats], "Categories retrieved successfully")


@app.post('/activities/categories', status_code=201)
def create_category(payload: schemas.CategoryIn, db: Session = Depends(get_session), admin=Depends(require_admin)):
    cat = ActivityService(db).create_category(payload.name, payload.description, payload.color)
    return respond(_category_out(cat), "Category created successfully", status_code=201)


@app.get('/activities')
def list_activities(name: Optional[str] = None, db: Session = Depends(get_session), account=Depends(get_current_account)):
    activities = ActivityService(db).list_activities(name=name)
    return respond([_activity_out(a) for a in activities], "Activities retrieved successfully")


@app.get('/activities/{activity_id}')
def get_activity(activity_id: int, db: Session = Depends(get_session), account=Depends(get_current_account)):
    return respond(_activity_out(ActivityService(db).get_activity(activity_id)), "Activity retrieved successfully")


@app.post('/activities', status_code=201)
def create_activity(payload: schemas.ActivityIn, db: Session = Depends(get_session), admin=Depends(require_admin)):
    activity = ActivityService(db).create_activity(**payload.model_dump())
    return respond(_activity_out(activity), "Activity created successfully", status_code=201)


@app.put('/activities/{activity_id}')
def update_activity(activity_id: int, payload: schemas.ActivityUpdate, db: Session = Depends(get_session), admin=Depends(require_admin)):
    activity = ActivityService(db).update_activity(activity_id, **payload.model_dump(exclude_unset=True))
    return respond(_activity_out(activity), "Activity updated successfully")


@app.delete('/activities/{activity_id}')
def delete_activity(activity_id: int, db: Session = Depends(get_session), admin=Depends(require_admin)):
    ActivityService(db).delete_activity(activity_id)
    return respond(None, "Activity deleted successfully")


# active groups, supervision, visits

@app.get('/active/groups')
def list_active_groups(running: bool = False, db: Session = Depends(get_session), account=Depends(get_current_account)):
    groups = ActiveService(db).list_active_groups(running_only=running)
    return respond([_active_out(g) for g in groups], "Active groups retrieved successfully")


@app.post('/active/groups', status_code=201)
def start_active_group(payload: schemas.ActiveGroupIn, db: Session = Depends(get_session), account=Depends(get_current_account)):
    active = ActiveService(db).create_active_group(
        payload.group_id, payload.room_id, start_time=payload.start_time, device_id=payload.device_id
    )
    return respond(_active_out(active), "Active group started successfully", status_code=201)


@app.get('/active/groups/{active_group_id}')
def get_active_group(active_group_id: int, db: Session = Depends(get_session), account=Depends(get_current_account)):
    return respond(_active_out(ActiveService(db).get_active_group(active_group_id)), "Active group retrieved successfully")


@app.post('/active/groups/{active_group_id}/end')
def end_active_group(active_group_id: int, db: Session = Depends(get_session), account=Depends(get_current_account)):
    active = ActiveService(db).end_active_group(active_group_id)
    return respond(_active_out(active), "Active group ended successfully")


@app.post('/active/groups/{active_group_id}/claim')
def claim_active_group(active_group_id: int, payload: Optional[schemas.ClaimIn] = None,
                       db: Session = Depends(get_session), staff: models.Staff = Depends(require_staff)):
    role = payload.role if payload else "supervisor"
    sup = ActiveService(db).claim_active_group(active_group_id, staff.id, role)
    return respond(_supervisor_out(sup), "Active group claimed successfully")


@app.get('/active/groups/{active_group_id}/supervisors')
def list_supervisors(active_group_id: int, running: bool = True,
                     db: Session = Depends(get_session), account=Depends(get_current_account)):
    sups = ActiveService(db).find_supervisors(active_group_id, running_only=running)
    return respond([_supervisor_out(s) for s in sups], "Supervisors retrieved successfully")


@app.get('/active/groups/{active_group_id}/visits')
def list_group_visits(active_group_id: int, db: Session = Depends(get_session), account=Depends(get_current_account)):
    visits = ActiveService(db).find_visits(active_group_id)
    return respond([_visit_out(v) for v in visits], "Visits retrieved successfully")


@app.post('/active/supervisors/{supervision_id}/end')
def end_supervision(supervision_id: int, db: Session = Depends(get_session), account=Depends(get_current_account)):
    sup = ActiveService(db).end_supervision(supervision_id)
    return respond(_supervisor_out(sup), "Supervision ended successfully")


@app.post('/active/visits', status_code=201)
def create_visit(payload: schemas.VisitIn, db: Session = Depends(get_session), account=Depends(get_current_account)):
    visit = ActiveService(db).create_visit(payload.student_id, payload.active_group_id)
    return respond(_visit_out(visit), "Visit created successfully", status_code=201)


@app.post('/active/visits/{visit_id}/end')
def end_visit(visit_id: int, db: Session = Depends(get_session), account=Depends(get_current_account)):
    visit = ActiveService(db).end_visit(visit_id)
    return respond(_visit_out(visit), "Visit ended successfully")


@app.get('/active/schulhof/status')
def schulhof_status(db: Session = Depends(get_session), staff: models.Staff = Depends(require_staff)):
    status = SchulhofService(db).get_status(staff.id)
    return respond(status, "Schulhof status retrieved successfully")


@app.post('/active/schulhof/supervise')
def schulhof_supervise(payload: schemas.SchulhofToggleIn, db: Session = Depends(get_session),
                       staff: models.Staff = Depends(require_staff)):
    """Start or stop supervising the Schulhof (`{"action": "start"|"stop"}`)."""
    result = SchulhofService(db).toggle_supervision(staff.id, payload.action)
    verb = "started" if payload.action == ACTION_START else "stopped"
    return respond(result, f"Schulhof supervision {verb} successfully")


# iot

@app.post('/iot/devices', status_code=201)
def register_device(payload: schemas.DeviceIn, db: Session = Depends(get_session), admin=Depends(require_admin)):
    device = DeviceService(db).register(payload.device_id, payload.name)
    return respond(_device_out(device, include_key=True), "Device registered successfully", status_code=201)


@app.get('/iot/devices')
def list_devices(db: Session = Depends(get_session), admin=Depends(require_admin)):
    return respond([_device_out(d) for d in DeviceService(db).list_devices()], "Devices retrieved successfully")


@app.post('/iot/checkin')
def device_checkin(payload: schemas.CheckinIn, db: Session = Depends(get_session), device: models.Device = Depends(get_device)):
    """Process one RFID scan from an authenticated reader."""
    result = CheckinService(db).process(payload.student_rfid, payload.action, payload.room_id, device=device)
    return JSONResponse(status_code=200, content=jsonable_encoder(result))


# feedback

@app.get('/feedback')
def list_feedback(student_id: Optional[int] = None, date: Optional[str] = None, is_mensa: Optional[str] = None,
                  db: Session = Depends(get_session), account=Depends(get_current_account)):
    day = _day_param(date) if date else None
    mensa = parse_bool_flag(is_mensa) if is_mensa else None
    entries = FeedbackService(db).list_entries(student_id=student_id, day=day, is_mensa=mensa)
    return respond([_feedback_out(e) for e in entries], "Feedback entries retrieved successfully")


@app.get('/feedback/student/{student_id}')
def feedback_by_student(student_id: int, db: Session = Depends(get_session), account=Depends(get_current_account)):
    entries = FeedbackService(db).get_entries_by_student(student_id)
    return respond([_feedback_out(e) for e in entries], "Student feedback retrieved successfully")


@app.get('/feedback/date/{day}')
def feedback_by_date(day: str, db: Session = Depends(get_session), account=Depends(get_current_account)):
    entries = FeedbackService(db).get_entries_by_day(_day_param(day))
    return respond([_feedback_out(e) for e in entries], "Feedback entries retrieved successfully")


@app.get('/feedback/mensa')
def mensa_feedback(is_mensa: Optional[str] = None, db: Session = Depends(get_session), account=Depends(get_current_account)):
    entries = FeedbackService(db).get_mensa_feedback(parse_bool_flag(is_mensa, default=True))
    return respond([_feedback_out(e) for e in entries], "Mensa feedback retrieved successfully")


@app.get('/feedback/date-range')
def feedback_by_range(start_date: str, end_date: str, student_id: Optional[int] = None,
                      db: Session = Depends(get_session), account=Depends(get_current_account)):
    start = _day_param(start_date, "start_date")
    end = _day_param(end_date, "end_date")
    entries = FeedbackService(db).get_entries_by_date_range(start, end, student_id=student_id)
    return respond([_feedback_out(e) for e in entries], "Feedback entries retrieved successfully")


@app.get('/feedback/{entry_id}')
def get_feedback(entry_id: int, db: Session = Depends(get_session), account=Depends(get_current_account)):
    return respond(_feedback_out(FeedbackService(db).get_entry(entry_id)), "Feedback entry retrieved successfully")


@app.post('/feedback', status_code=201)
def create_feedback(payload: schemas.FeedbackIn, db: Session = Depends(get_session), account=Depends(get_current_account)):
    entry = FeedbackService(db).create_entry(payload)
    return respond(_feedback_out(entry), "Feedback entry created successfully", status_code=201)


@app.post('/feedback/batch', status_code=201)
def create_feedback_batch(payload: schemas.FeedbackBatchIn, db: Session = Depends(get_session), account=Depends(get_current_account)):
    created, failures = FeedbackService(db).create_entries(payload.entries)
    if failures:
        data = {"count": len(created), "errors": failures}
        return respond(data, "Some feedback entries could not be created", status_code=206)
    return respond({"count": len(created)}, "Feedback entries created successfully", status_code=201)


@app.delete('/feedback/{entry_id}')
def delete_feedback(entry_id: int, db: Session = Depends(get_session), account=Depends(get_current_account)):
    FeedbackService(db).delete_entry(entry_id)
    return respond(None, "Feedback entry deleted successfully")
