import os

# must be set before the application modules are imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session
from ogs.database import engine, create_db_and_tables, drop_db_and_tables
from ogs.main import app
from ogs import services

ADMIN_EMAIL = "admin@ogs.test"
ADMIN_PASSWORD = "admin-pass-1"
STAFF_PASSWORD = "staff-pass-1"


@pytest.fixture(autouse=True)
def reset_db():
    """Give every test an empty in-memory database."""
    drop_db_and_tables()
    create_db_and_tables()
    yield


@pytest.fixture
def session():
    with Session(engine) as s:
        yield s


@pytest.fixture
def client():
    return TestClient(app)


def login_headers(client, email, password):
    r = client.post('/auth/login', json={'email': email, 'password': password})
    assert r.status_code == 200, r.text
    return {'Authorization': f"Bearer {r.json()['access_token']}"}


def make_staff(client, first_name="Anna", last_name="Berg", email="anna@ogs.test", tag_id=None):
    """Create a staff member with a login and return its id and auth headers."""
    with Session(engine) as s:
        staff = services.PersonService(s).create_staff(first_name, last_name, tag_id=tag_id)
        services.AuthService(s).create_account(email, STAFF_PASSWORD, person_id=staff.person_id)
        staff_id = staff.id
    return {'id': staff_id, 'headers': login_headers(client, email, STAFF_PASSWORD)}


@pytest.fixture
def admin_headers(client):
    with Session(engine) as s:
        services.AuthService(s).create_account(ADMIN_EMAIL, ADMIN_PASSWORD, role="admin")
    return login_headers(client, ADMIN_EMAIL, ADMIN_PASSWORD)


@pytest.fixture
def staff_member(client):
    return make_staff(client)


@pytest.fixture
def device_headers(client, admin_headers):
    r = client.post('/iot/devices', json={'device_id': 'reader-01', 'name': 'Eingang'}, headers=admin_headers)
    assert r.status_code == 201, r.text
    return {'X-Device-Key': r.json()['data']['api_key']}
