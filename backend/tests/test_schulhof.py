from datetime import datetime, timedelta
from sqlmodel import select
from ogs import errors, models, schulhof
from ogs.schulhof import SchulhofService
from ogs.services import ActiveService, ActivityService, PersonService
from conftest import make_staff
import pytest


def _count(session, model):
    return len(session.exec(select(model)).all())


def test_ensure_infrastructure_is_idempotent(session):
    svc = SchulhofService(session)
    first = svc.ensure_infrastructure()
    for _ in range(3):
        assert svc.ensure_infrastructure().id == first.id
    assert _count(session, models.Room) == 1
    assert _count(session, models.ActivityCategory) == 1
    assert _count(session, models.ActivityGroup) == 1
    room = session.exec(select(models.Room)).one()
    assert (room.name, room.capacity, room.color) == ('Schulhof', 100, '#7ED321')
    assert first.max_participants == 100
    assert first.is_open is True
    assert first.planned_room_id == room.id
    assert first.category.description == 'Schulhof und Außenbereich'


def test_ensure_reuses_partially_existing_infrastructure(session):
    existing = models.Room(name=schulhof.ROOM_NAME, capacity=50)
    session.add(existing)
    session.commit()
    activity = SchulhofService(session).ensure_infrastructure()
    assert activity.planned_room_id == existing.id
    assert _count(session, models.Room) == 1


def test_ensure_recovers_when_insert_loses_race(session, monkeypatch):
    svc = SchulhofService(session)
    # the row appears between the lookup and the insert
    session.add(models.ActivityCategory(name=schulhof.CATEGORY_NAME))
    session.commit()
    real = svc.category_repo.get_by_name
    calls = []

    def stale_first_lookup(name):
        calls.append(name)
        return None if len(calls) == 1 else real(name)

    monkeypatch.setattr(svc.category_repo, 'get_by_name', stale_first_lookup)
    category = svc.ensure_category()
    assert len(calls) == 2
    assert category.name == schulhof.CATEGORY_NAME
    assert _count(session, models.ActivityCategory) == 1


def test_get_or_create_active_group_reuses_todays_session(session):
    svc = SchulhofService(session)
    first = svc.get_or_create_active_group()
    assert first.end_time is None
    assert svc.get_or_create_active_group().id == first.id
    assert _count(session, models.ActiveGroup) == 1


def test_stale_session_from_previous_day_is_replaced(session):
    svc = SchulhofService(session)
    activity = svc.ensure_infrastructure()
    active = ActiveService(session)
    stale = active.create_active_group(activity.id, activity.planned_room_id, start_time=datetime.now() - timedelta(days=1))
    student = PersonService(session).create_student('Lena', 'Meyer', '3a')
    active.create_visit(student.id, stale.id)
    today = svc.get_or_create_active_group()
    assert today.id != stale.id
    assert active.get_active_group(stale.id).end_time is not None
    assert active.get_student_current_visit(student.id) is None


def test_other_activity_in_schulhof_room_is_left_running(session):
    svc = SchulhofService(session)
    room_id = svc.ensure_infrastructure().planned_room_id
    activities = ActivityService(session)
    football = activities.create_activity('Fußball', activities.create_category('Sport').id)
    active = ActiveService(session)
    foreign = active.create_active_group(football.id, room_id, start_time=datetime.now() - timedelta(days=1))
    with pytest.raises(errors.RoomConflictError):
        svc.get_or_create_active_group()
    assert active.get_active_group(foreign.id).end_time is None


def test_status_without_infrastructure(session):
    status = SchulhofService(session).get_status(1)
    assert status.exists is False
    assert status.room_name == 'Schulhof'
    assert status.active_group_id is None
    # reading the status never provisions anything
    assert _count(session, models.Room) == 0


def test_toggle_supervision_start_stop(session):
    people = PersonService(session)
    eva = people.create_staff('Eva', 'Klein')
    tom = people.create_staff('Tom', 'Kurz')
    svc = SchulhofService(session)
    started = svc.toggle_supervision(eva.id, 'start')
    assert started.action == 'started'
    assert started.supervision_id is not None
    svc.toggle_supervision(tom.id, 'start')
    with pytest.raises(errors.AlreadySupervisingError):
        svc.toggle_supervision(eva.id, 'start')

    status = svc.get_status(eva.id)
    assert status.exists is True
    assert status.active_group_id == started.active_group_id
    assert status.is_user_supervising is True
    assert status.supervision_id == started.supervision_id
    assert status.supervisor_count == 2
    assert {s.name for s in status.supervisors} == {'Eva Klein', 'Tom Kurz'}
    assert [s.is_current_user for s in status.supervisors if s.staff_id == eva.id] == [True]

    stopped = svc.toggle_supervision(eva.id, 'stop')
    assert stopped.action == 'stopped'
    status = svc.get_status(eva.id)
    assert status.is_user_supervising is False
    assert status.supervisor_count == 1
    with pytest.raises(errors.NotSupervisingError):
        svc.toggle_supervision(eva.id, 'stop')


def test_toggle_rejects_unknown_action(session):
    eva = PersonService(session).create_staff('Eva', 'Klein')
    for action in ('START', 'pause', ''):
        with pytest.raises(errors.ValidationError):
            SchulhofService(session).toggle_supervision(eva.id, action)
    assert _count(session, models.Room) == 0


def test_status_counts_students(session):
    svc = SchulhofService(session)
    ag = svc.get_or_create_active_group()
    student = PersonService(session).create_student('Lena', 'Meyer', '3a')
    ActiveService(session).create_visit(student.id, ag.id)
    assert svc.get_status(None).student_count == 1


def test_schulhof_http_flow(client):
    staff = make_staff(client)
    headers = staff['headers']
    r = client.get('/active/schulhof/status', headers=headers)
    assert r.status_code == 200
    assert r.json()['data']['exists'] is False

    r = client.post('/active/schulhof/supervise', json={'action': 'start'}, headers=headers)
    assert r.status_code == 200
    body = r.json()
    assert body['message'] == 'Schulhof supervision started successfully'
    assert body['data']['action'] == 'started'

    status = client.get('/active/schulhof/status', headers=headers).json()['data']
    assert status['exists'] is True
    assert status['is_user_supervising'] is True
    assert status['supervisors'][0]['is_current_user'] is True

    r = client.post('/active/schulhof/supervise', json={'action': 'stop'}, headers=headers)
    assert r.json()['message'] == 'Schulhof supervision stopped successfully'
    r = client.post('/active/schulhof/supervise', json={'action': 'stop'}, headers=headers)
    assert r.status_code == 409
    assert r.json()['error'] == 'user is not currently supervising the Schulhof'


def test_schulhof_http_errors(client, admin_headers):
    staff = make_staff(client)
    r = client.post('/active/schulhof/supervise', json={'action': 'toggle'}, headers=staff['headers'])
    assert r.status_code == 400
    assert r.json()['error'] == "action must be 'start' or 'stop'"
    r = client.post('/active/schulhof/supervise', json={}, headers=staff['headers'])
    assert r.status_code == 400
    r = client.get('/active/schulhof/status', headers=admin_headers)
    assert r.status_code == 403
    assert r.json()['error'] == 'user must be a staff member'
