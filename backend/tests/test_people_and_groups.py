from ogs import errors
from ogs.repositories import AccountRepository
from ogs.services import ActiveService, ActivityService, AuthService, FacilityService, FeedbackService, GroupService, PersonService
from ogs.schemas import FeedbackIn
import pytest


def test_create_student_via_api(client, admin_headers):
    g = client.post('/groups', json={'name': 'Bären'}, headers=admin_headers).json()['data']
    payload = {'first_name': 'Lena', 'last_name': 'Meyer', 'school_class': '3a', 'tag_id': '04:a3:2b:11', 'group_id': g['id']}
    r = client.post('/students', json=payload, headers=admin_headers)
    assert r.status_code == 201
    data = r.json()['data']
    assert data['tag_id'] == '04A32B11'
    assert data['group_id'] == g['id']
    r2 = client.get(f"/groups/{g['id']}/students", headers=admin_headers)
    assert [s['first_name'] for s in r2.json()['data']] == ['Lena']


def test_student_requires_names_and_class(client, admin_headers):
    r = client.post('/students', json={'first_name': 'Lena', 'last_name': '', 'school_class': '3a'}, headers=admin_headers)
    assert r.status_code == 400
    r = client.post('/students', json={'first_name': 'Lena', 'last_name': 'M', 'school_class': ' '}, headers=admin_headers)
    assert r.status_code == 400


def test_unknown_student_group_is_404(session):
    with pytest.raises(errors.GroupNotFoundError):
        PersonService(session).create_student('Lena', 'Meyer', '3a', group_id=42)


def test_duplicate_tag_on_create_conflicts(session):
    people = PersonService(session)
    people.create_student('Lena', 'Meyer', '3a', tag_id='ABCD')
    with pytest.raises(errors.DuplicateTagError):
        people.create_staff('Tom', 'Kurz', tag_id='ab:cd')


def test_assign_tag_moves_it_from_previous_owner(session):
    people = PersonService(session)
    a = people.create_student('Lena', 'Meyer', '3a', tag_id='ABCD')
    b = people.create_student('Max', 'Roth', '3b')
    people.assign_tag(b.person_id, 'ab-cd')
    assert people.find_by_tag('ABCD').id == b.person_id
    assert people.get_person(a.person_id).tag_id is None
    people.remove_tag(b.person_id)
    with pytest.raises(errors.PersonNotFoundError):
        people.find_by_tag('ABCD')
    with pytest.raises(errors.ValidationError):
        people.remove_tag(b.person_id)


def test_rfid_endpoints(client, admin_headers):
    s = client.post('/students', json={'first_name': 'Lena', 'last_name': 'Meyer', 'school_class': '3a'},
                    headers=admin_headers).json()['data']
    r = client.put(f"/persons/{s['person_id']}/rfid", json={'tag_id': 'de:ad:be:ef'}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()['data']['tag_id'] == 'DEADBEEF'
    r = client.delete(f"/persons/{s['person_id']}/rfid", headers=admin_headers)
    assert r.json()['data']['tag_id'] is None
    assert client.put('/persons/999/rfid', json={'tag_id': 'AA'}, headers=admin_headers).status_code == 404


def test_list_students_search_and_update(session):
    people = PersonService(session)
    people.create_student('Lena', 'Meyer', '3a')
    max_ = people.create_student('Max', 'Roth', '3b')
    assert [s.person.first_name for s in people.list_students(search='rot')] == ['Max']
    people.update_student(max_.id, school_class='4b', first_name='Maximilian')
    refreshed = people.get_student(max_.id)
    assert refreshed.school_class == '4b'
    assert refreshed.person.first_name == 'Maximilian'


def test_delete_student_removes_visits_and_feedback(session):
    people = PersonService(session)
    facilities = FacilityService(session)
    activities = ActivityService(session)
    student = people.create_student('Lena', 'Meyer', '3a', tag_id='01')
    room = facilities.create_room('Raum 1')
    act = activities.create_activity('Lesen', activities.create_category('Ruhe').id)
    active = ActiveService(session)
    ag = active.create_active_group(act.id, room.id)
    active.create_visit(student.id, ag.id)
    FeedbackService(session).create_entry(FeedbackIn(value='gut', day='2026-03-02', time='12:00:00', student_id=student.id))
    people.delete_student(student.id)
    with pytest.raises(errors.StudentNotFoundError):
        people.get_student(student.id)
    assert active.find_visits(ag.id) == []
    assert FeedbackService(session).list_entries() == []
    with pytest.raises(errors.PersonNotFoundError):
        people.find_by_tag('01')


def test_staff_crud(client, admin_headers):
    r = client.post('/staff', json={'first_name': 'Eva', 'last_name': 'Klein', 'staff_notes': 'Mo-Fr'}, headers=admin_headers)
    assert r.status_code == 201
    staff_id = r.json()['data']['id']
    assert client.get(f'/staff/{staff_id}', headers=admin_headers).json()['data']['last_name'] == 'Klein'
    assert len(client.get('/staff', headers=admin_headers).json()['data']) == 1
    assert client.delete(f'/staff/{staff_id}', headers=admin_headers).status_code == 200
    assert client.get(f'/staff/{staff_id}', headers=admin_headers).status_code == 404


def test_staff_cannot_be_deleted_while_supervising(session):
    people = PersonService(session)
    staff = people.create_staff('Eva', 'Klein')
    room = FacilityService(session).create_room('Raum 2')
    activities = ActivityService(session)
    act = activities.create_activity('Basteln', activities.create_category('Kreativ').id)
    active = ActiveService(session)
    ag = active.create_active_group(act.id, room.id)
    active.claim_active_group(ag.id, staff.id)
    with pytest.raises(errors.ConflictError):
        people.delete_staff(staff.id)
    active.end_active_group(ag.id)
    people.delete_staff(staff.id)
    assert active.find_supervisors(ag.id, running_only=False) == []


def test_group_crud(client, admin_headers):
    room_id = client.post('/rooms', json={'name': 'Gruppenraum'}, headers=admin_headers).json()['data']['id']
    r = client.post('/groups', json={'name': 'Füchse', 'room_id': room_id}, headers=admin_headers)
    assert r.status_code == 201
    gid = r.json()['data']['id']
    assert client.post('/groups', json={'name': 'Füchse'}, headers=admin_headers).status_code == 409
    assert client.post('/groups', json={'name': 'Eulen', 'room_id': 999}, headers=admin_headers).status_code == 404
    r = client.put(f'/groups/{gid}', json={'room_id': None}, headers=admin_headers)
    assert r.json()['data']['room_id'] is None
    assert client.get('/groups/999', headers=admin_headers).status_code == 404


def test_delete_group_detaches_students(session):
    groups = GroupService(session)
    people = PersonService(session)
    g = groups.create_group('Igel')
    s = people.create_student('Lena', 'Meyer', '3a', group_id=g.id)
    groups.delete_group(g.id)
    assert people.get_student(s.id).group_id is None
    with pytest.raises(errors.GroupNotFoundError):
        groups.list_students(g.id)


def test_activities_and_categories(client, admin_headers):
    cat = client.post('/activities/categories', json={'name': 'Sport'}, headers=admin_headers)
    assert cat.status_code == 201
    cat_id = cat.json()['data']['id']
    assert client.post('/activities/categories', json={'name': 'Sport'}, headers=admin_headers).status_code == 409
    r = client.post('/activities', json={'name': 'Fußball', 'category_id': cat_id, 'max_participants': 0}, headers=admin_headers)
    assert r.status_code == 400
    r = client.post('/activities', json={'name': 'Fußball', 'category_id': 999}, headers=admin_headers)
    assert r.status_code == 404
    r = client.post('/activities', json={'name': 'Fußball', 'category_id': cat_id, 'max_participants': 14}, headers=admin_headers)
    assert r.status_code == 201
    act_id = r.json()['data']['id']
    r = client.put(f'/activities/{act_id}', json={'is_open': True}, headers=admin_headers)
    assert r.json()['data']['is_open'] is True
    listed = client.get('/activities?name=fuß', headers=admin_headers).json()['data']
    assert [a['id'] for a in listed] == [act_id]
    assert client.delete(f'/activities/{act_id}', headers=admin_headers).status_code == 200
    assert client.get(f'/activities/{act_id}', headers=admin_headers).status_code == 404


def test_delete_staff_releases_person_and_tag(session):
    people = PersonService(session)
    staff = people.create_staff('Eva', 'Klein', tag_id='BB01')
    person_id = staff.person_id
    people.delete_staff(staff.id)
    with pytest.raises(errors.PersonNotFoundError):
        people.find_by_tag('BB01')
    with pytest.raises(errors.PersonNotFoundError):
        people.get_person(person_id)
    again = people.create_student('Lena', 'Meyer', '3a', tag_id='BB01')
    assert people.find_by_tag('bb:01').id == again.person_id


def test_delete_staff_unlinks_login_account(session):
    people = PersonService(session)
    staff = people.create_staff('Eva', 'Klein')
    account = AuthService(session).create_account('eva@example.org', 'sehr-geheim', role='staff', person_id=staff.person_id)
    people.delete_staff(staff.id)
    session.expire_all()
    assert AccountRepository(session).get(account.id).person_id is None


def test_activity_with_sessions_cannot_be_deleted(session):
    activities = ActivityService(session)
    act = activities.create_activity('Malen', activities.create_category('Kunst').id)
    room = FacilityService(session).create_room('Atelier')
    ActiveService(session).create_active_group(act.id, room.id)
    with pytest.raises(errors.ConflictError):
        activities.delete_activity(act.id)
    idle = activities.create_activity('Töpfern', act.category_id)
    activities.delete_activity(idle.id)
    with pytest.raises(errors.ActivityNotFoundError):
        activities.get_activity(idle.id)
