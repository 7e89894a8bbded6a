"""
Pytest fixtures for RDR Finance backend tests.

Provides the test app (in-memory SQLite), a clean database per test,
admin and employee accounts, and bearer-token headers for both.
"""

import pytest
from rdr_finance import create_app
from rdr_finance.extensions import db
from rdr_finance.models import User
from rdr_finance.models.auth import ROLE_ADMIN
from rdr_finance.services import employee_service, session_service
from rdr_finance.services.auth_service import create_user

ADMIN_PASSWORD = "Password123"
EMPLOYEE_PASSWORD = "Employee123"


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'UPLOAD_FOLDER': str(tmp_path_factory.mktemp("uploads")),
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def admin(db_session):
    """Finance admin account."""
    return create_user("admin", ADMIN_PASSWORD, role=ROLE_ADMIN, full_name="Finance Admin")


@pytest.fixture(scope='function')
def employee(db_session, admin):
    """Employee profile (with its login) created by the admin."""
    return employee_service.create_employee(admin, {
        "name": "Budi Santoso",
        "username": "budi",
        "password": EMPLOYEE_PASSWORD,
        "position": "Driver",
        "email": "budi@example.com",
    })


@pytest.fixture(scope='function')
def employee_user(employee) -> User:
    return employee.user


@pytest.fixture(scope='function')
def other_employee(db_session, admin):
    return employee_service.create_employee(admin, {
        "name": "Siti Aminah",
        "username": "siti",
        "password": EMPLOYEE_PASSWORD,
    })


@pytest.fixture(scope='function')
def admin_headers(admin):
    _session, token = session_service.create_session(admin.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def employee_headers(employee_user):
    _session, token = session_service.create_session(employee_user.id)
    return auth_headers(token)


def get_auth_token(client, username: str, password: str) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def claim_payload(**overrides) -> dict:
    """A valid reimbursement/transaction body with one item."""
    payload = {
        "date": "2025-01-05",
        "category": "Transport",
        "activity_name": "Client visit",
        "description": "Taxi to client",
        "items": [{"name": "Taxi", "qty": 1, "price": 75000}],
    }
    payload.update(overrides)
    return payload
