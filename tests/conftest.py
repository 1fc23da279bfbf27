"""
Shared fixtures for the API tests.

Every test gets a fresh in-memory SQLite database seeded with one org, an
admin, two care managers, their clients and a few service types.
"""

import os

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret-key"
os.environ["STRIPE_WEBHOOK_SECRET"] = ""
os.environ["SECURITY_HEADERS_ENABLED"] = "false"

from datetime import datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app import models, models_invoice  # noqa: E402, F401
from app.auth import create_access_token  # noqa: E402
from app.database import Base, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Activity, Client, Organization, ServiceType, User  # noqa: E402

PERIOD_START = datetime(2024, 3, 1)
PERIOD_END = datetime(2024, 3, 31, 23, 59, 59)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def org(db):
    org = Organization(
        name="Sunrise Care Partners",
        contact_email="billing@sunrise.example",
        billing_rules_json={"hourlyRate": 150, "rounding": "15m"},
    )
    db.add(org)
    db.commit()
    return org


@pytest.fixture
def other_org(db):
    org = Organization(name="Other Practice", billing_rules_json={})
    db.add(org)
    db.commit()
    return org


@pytest.fixture
def admin(db, org):
    user = User(org_id=org.id, role="admin", name="Ada Admin", email="admin@sunrise.example")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def care_manager(db, org):
    user = User(org_id=org.id, role="care_manager", name="Casey Manager", email="casey@sunrise.example")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def other_care_manager(db, org):
    user = User(org_id=org.id, role="care_manager", name="Robin Manager", email="robin@sunrise.example")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def elder(db, org, care_manager):
    """Client owned by care_manager, with a client-level hourly override"""
    record = Client(
        org_id=org.id,
        primary_cm_id=care_manager.id,
        name="Margaret Ellis",
        billing_rules_json={"hourlyRate": 175},
    )
    db.add(record)
    db.commit()
    return record


@pytest.fixture
def other_elder(db, org, other_care_manager):
    record = Client(
        org_id=org.id,
        primary_cm_id=other_care_manager.id,
        name="Walter Brooks",
        billing_rules_json={},
    )
    db.add(record)
    db.commit()
    return record


@pytest.fixture
def service_types(db, org):
    flat = ServiceType(org_id=org.id, name="Care Plan Review", rate_type="flat", rate_amount=50)
    hourly = ServiceType(org_id=org.id, name="Home Visit", rate_type="hourly", rate_amount=120)
    weekly = ServiceType(org_id=org.id, name="Weekly Check-in", rate_type="weekly", rate_amount=60)
    db.add_all([flat, hourly, weekly])
    db.commit()
    return {"flat": flat, "hourly": hourly, "weekly": weekly}


@pytest.fixture
def make_activity(db):
    """Factory for activities; duration is in minutes"""

    def _make(client, start=None, duration=60, service_type=None, is_billable=True, end=None):
        start = start or PERIOD_START + timedelta(days=2, hours=9)
        end = end or start + timedelta(minutes=duration)
        activity = Activity(
            org_id=client.org_id,
            client_id=client.id,
            cm_id=client.primary_cm_id,
            source="phone",
            start_time=start,
            end_time=end,
            duration=duration,
            is_billable=is_billable,
            service_type_id=service_type.id if service_type else None,
        )
        db.add(activity)
        db.commit()
        return activity

    return _make


def token_for(user) -> str:
    return create_access_token({"userId": user.id, "orgId": user.org_id, "role": user.role})


@pytest.fixture
def admin_headers(admin):
    return {"Authorization": f"Bearer {token_for(admin)}"}


@pytest.fixture
def cm_headers(care_manager):
    return {"Authorization": f"Bearer {token_for(care_manager)}"}


@pytest.fixture
def other_cm_headers(other_care_manager):
    return {"Authorization": f"Bearer {token_for(other_care_manager)}"}


@pytest.fixture
def period():
    return {"periodStart": PERIOD_START.isoformat(), "periodEnd": PERIOD_END.isoformat()}
