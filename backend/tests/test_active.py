from datetime import date, datetime
from ogs import errors
from ogs.services import ActiveService, ActivityService, FacilityService, PersonService
import pytest


@pytest.fixture
def setup(session):
    """A room, an activity, a staff member and two students."""
    activities = ActivityService(session)
    people = PersonService(session)
    return {
        'room': FacilityService(session).create_room('Werkraum', capacity=10),
        'activity': activities.create_activity('Werken', activities.create_category('Kreativ').id, max_participants=5),
        'staff': people.create_staff('Eva', 'Klein'),
        'lena': people.create_student('Lena', 'Meyer', '3a'),
        'max': people.create_student('Max', 'Roth', '3b'),
    }


def test_one_running_group_per_room(session, setup):
    active = ActiveService(session)
    ag = active.create_active_group(setup['activity'].id, setup['room'].id)
    assert ag.is_active
    with pytest.raises(errors.RoomConflictError):
        active.create_active_group(setup['activity'].id, setup['room'].id)
    active.end_active_group(ag.id)
    again = active.create_active_group(setup['activity'].id, setup['room'].id)
    assert again.id != ag.id
    assert [g.id for g in active.find_active_groups_by_room(setup['room'].id)] == [again.id]
    assert [g.id for g in active.list_active_groups(running_only=True)] == [again.id]
    assert len(active.list_active_groups()) == 2


def test_create_active_group_checks_references(session, setup):
    active = ActiveService(session)
    with pytest.raises(errors.ActivityNotFoundError):
        active.create_active_group(999, setup['room'].id)
    with pytest.raises(errors.RoomNotFoundError):
        active.create_active_group(setup['activity'].id, 999)


def test_end_closes_visits_and_supervisions(session, setup):
    active = ActiveService(session)
    ag = active.create_active_group(setup['activity'].id, setup['room'].id)
    sup = active.claim_active_group(ag.id, setup['staff'].id)
    visit = active.create_visit(setup['lena'].id, ag.id)
    ended = active.end_active_group(ag.id)
    assert ended.end_time is not None
    assert active.get_student_current_visit(setup['lena'].id) is None
    assert active.find_supervisors(ag.id, running_only=True) == []
    assert [s.id for s in active.find_supervisors(ag.id, running_only=False)] == [sup.id]
    assert [v.id for v in active.find_student_visits(setup['lena'].id)] == [visit.id]
    with pytest.raises(errors.ConflictError):
        active.end_active_group(ag.id)


def test_claim_rules(session, setup):
    active = ActiveService(session)
    ag = active.create_active_group(setup['activity'].id, setup['room'].id)
    sup = active.claim_active_group(ag.id, setup['staff'].id, role='')
    assert sup.role == 'supervisor'
    with pytest.raises(errors.AlreadySupervisingError):
        active.claim_active_group(ag.id, setup['staff'].id)
    with pytest.raises(errors.StaffNotFoundError):
        active.claim_active_group(ag.id, 999)
    with pytest.raises(errors.ActiveGroupNotFoundError):
        active.claim_active_group(999, setup['staff'].id)
    active.end_supervision(sup.id)
    with pytest.raises(errors.ConflictError):
        active.end_supervision(sup.id)
    # a released supervision can be claimed again
    assert active.claim_active_group(ag.id, setup['staff'].id).id != sup.id


def test_cannot_claim_ended_group(session, setup):
    active = ActiveService(session)
    ag = active.create_active_group(setup['activity'].id, setup['room'].id)
    active.end_active_group(ag.id)
    with pytest.raises(errors.ConflictError) as exc:
        active.claim_active_group(ag.id, setup['staff'].id)
    assert str(exc.value) == 'cannot claim ended group'


def test_one_open_visit_per_student(session, setup):
    active = ActiveService(session)
    ag = active.create_active_group(setup['activity'].id, setup['room'].id)
    visit = active.create_visit(setup['lena'].id, ag.id)
    with pytest.raises(errors.StudentAlreadyCheckedInError):
        active.create_visit(setup['lena'].id, ag.id)
    active.create_visit(setup['max'].id, ag.id)
    assert active.count_open_visits(ag.id) == 2
    assert active.count_open_visits_in_room(setup['room'].id) == 2
    active.end_visit(visit.id)
    with pytest.raises(errors.ConflictError):
        active.end_visit(visit.id)
    assert active.count_open_visits(ag.id) == 1
    with pytest.raises(errors.StudentNotFoundError):
        active.create_visit(999, ag.id)


def test_active_group_endpoints(client, admin_headers, staff_member):
    room_id = client.post('/rooms', json={'name': 'Aula'}, headers=admin_headers).json()['data']['id']
    cat_id = client.post('/activities/categories', json={'name': 'Musik'}, headers=admin_headers).json()['data']['id']
    act_id = client.post('/activities', json={'name': 'Chor', 'category_id': cat_id}, headers=admin_headers).json()['data']['id']
    headers = staff_member['headers']
    r = client.post('/active/groups', json={'group_id': act_id, 'room_id': room_id}, headers=headers)
    assert r.status_code == 201
    ag = r.json()['data']
    assert ag['room_name'] == 'Aula'
    assert ag['group_name'] == 'Chor'
    r = client.post('/active/groups', json={'group_id': act_id, 'room_id': room_id}, headers=headers)
    assert r.status_code == 409
    r = client.post(f"/active/groups/{ag['id']}/claim", headers=headers)
    assert r.status_code == 200
    assert r.json()['data']['name'] == 'Anna Berg'
    sup_id = r.json()['data']['id']
    assert client.post(f"/active/groups/{ag['id']}/claim", headers=headers).status_code == 409
    sups = client.get(f"/active/groups/{ag['id']}/supervisors", headers=headers).json()['data']
    assert [s['staff_id'] for s in sups] == [staff_member['id']]
    # an admin without a staff record cannot claim
    assert client.post(f"/active/groups/{ag['id']}/claim", headers=admin_headers).status_code == 403
    assert client.post(f'/active/supervisors/{sup_id}/end', headers=headers).status_code == 200
    rooms = client.get('/rooms', headers=headers).json()['data']
    assert rooms[0]['is_occupied'] is True
    assert rooms[0]['group_name'] == 'Chor'
    r = client.post(f"/active/groups/{ag['id']}/end", headers=headers)
    assert r.json()['data']['is_active'] is False
    assert client.post(f"/active/groups/{ag['id']}/claim", headers=headers).status_code == 409
    assert client.get('/active/groups/999', headers=headers).status_code == 404


def test_visit_endpoints(client, admin_headers):
    room_id = client.post('/rooms', json={'name': 'Aula'}, headers=admin_headers).json()['data']['id']
    cat_id = client.post('/activities/categories', json={'name': 'Musik'}, headers=admin_headers).json()['data']['id']
    act_id = client.post('/activities', json={'name': 'Chor', 'category_id': cat_id}, headers=admin_headers).json()['data']['id']
    student = client.post('/students', json={'first_name': 'Lena', 'last_name': 'Meyer', 'school_class': '3a'},
                          headers=admin_headers).json()['data']
    ag_id = client.post('/active/groups', json={'group_id': act_id, 'room_id': room_id}, headers=admin_headers).json()['data']['id']
    r = client.post('/active/visits', json={'student_id': student['id'], 'active_group_id': ag_id}, headers=admin_headers)
    assert r.status_code == 201
    visit_id = r.json()['data']['id']
    current = client.get(f"/students/{student['id']}/current-visit", headers=admin_headers).json()['data']
    assert current['room_name'] == 'Aula'
    assert client.post(f'/active/visits/{visit_id}/end', headers=admin_headers).status_code == 200
    assert client.get(f"/students/{student['id']}/current-visit", headers=admin_headers).json()['data'] is None
    history = client.get(f"/students/{student['id']}/visits", headers=admin_headers).json()['data']
    assert [v['id'] for v in history] == [visit_id]
    group_visits = client.get(f'/active/groups/{ag_id}/visits', headers=admin_headers).json()['data']
    assert group_visits[0]['exit_time'] is not None


def test_active_group_timestamps_round_trip(session, setup):
    active = ActiveService(session)
    started = datetime(2026, 3, 2, 7, 30)
    ag = active.create_active_group(setup['activity'].id, setup['room'].id, start_time=started)
    active.create_visit(setup['lena'].id, ag.id)
    active.claim_active_group(ag.id, setup['staff'].id)
    session.expire_all()
    loaded = active.get_active_group(ag.id)
    assert loaded.start_time == started
    assert loaded.start_time.tzinfo is None
    assert loaded.last_activity.date() == date.today()
    visit = active.get_student_current_visit(setup['lena'].id)
    assert visit.entry_time.tzinfo is None
    ended = active.end_active_group(ag.id)
    session.expire_all()
    assert active.get_active_group(ended.id).end_time.tzinfo is None
    assert active.find_supervisors(ag.id, running_only=False)[0].end_date is not None


def test_active_group_can_be_bound_to_a_device(client, admin_headers):
    room_id = client.post('/rooms', json={'name': 'Leseraum'}, headers=admin_headers).json()['data']['id']
    cat_id = client.post('/activities/categories', json={'name': 'Ruhe'}, headers=admin_headers).json()['data']['id']
    act_id = client.post('/activities', json={'name': 'Lesen', 'category_id': cat_id}, headers=admin_headers).json()['data']['id']
    device = client.post('/iot/devices', json={'device_id': 'reader-07'}, headers=admin_headers).json()['data']
    payload = {'group_id': act_id, 'room_id': room_id, 'device_id': 999}
    r = client.post('/active/groups', json=payload, headers=admin_headers)
    assert r.status_code == 404
    assert r.json()['error'] == 'device not found'
    payload['device_id'] = device['id']
    r = client.post('/active/groups', json=payload, headers=admin_headers)
    assert r.status_code == 201
    assert r.json()['data']['device_id'] == device['id']
