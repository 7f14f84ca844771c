import os
import uuid

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret-with-enough-length-for-hs256-signing")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from clinica_dental.core.security import create_access_token
from clinica_dental.core.settings import settings
from clinica_dental.db.session import get_db
from clinica_dental.main import app
from clinica_dental.models import Base
from clinica_dental.models.user import Role, User
from clinica_dental.services.notifications import InMemoryNotificationStore


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def seeded_users(db_session):
    users = {
        "admin": User(
            external_id="admin-sub", email="admin@clinicadiamond.hn", full_name="Admin", role=Role.admin
        ),
        "doctor": User(
            external_id="doctor-sub", email="doctor@clinicadiamond.hn", full_name="Dra. López", role=Role.doctor
        ),
        "staff": User(
            external_id="staff-sub", email="staff@clinicadiamond.hn", full_name="Recepción", role=Role.staff
        ),
    }
    db_session.add_all(users.values())
    db_session.commit()
    for user in users.values():
        db_session.refresh(user)
    return users


def _headers_for(user: User) -> dict[str, str]:
    token = create_access_token(
        subject=user.external_id,
        secret=settings.jwt_secret,
        alg=settings.jwt_alg,
        expires_minutes=30,
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def auth_headers(seeded_users):
    return _headers_for(seeded_users["admin"])


@pytest.fixture()
def doctor_headers(seeded_users):
    return _headers_for(seeded_users["doctor"])


@pytest.fixture()
def staff_headers(seeded_users):
    return _headers_for(seeded_users["staff"])


@pytest.fixture()
def notification_store():
    store = InMemoryNotificationStore(max_items=50)
    yield store
    store.close()


@pytest.fixture()
def api_client(session_factory, seeded_users, notification_store):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.state.notification_store = notification_store
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
    app.state.notification_store = None


@pytest.fixture()
def create_patient(api_client, doctor_headers):
    def _create(**overrides):
        payload = {
            "full_name": "María Fernanda Zelaya",
            "national_id": f"0801-{uuid.uuid4().hex[:8]}",
            "birth_date": "1990-05-10",
            "sex": "femenino",
            "phone": "9999-8888",
            "country_code": "HN",
        }
        payload.update(overrides)
        response = api_client.post("/patients", json=payload, headers=doctor_headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture()
def create_treatment(api_client, doctor_headers):
    def _create(**overrides):
        payload = {"name": "Limpieza dental", "specialty": "Preventiva", "price_cents": 80000}
        payload.update(overrides)
        response = api_client.post("/treatments", json=payload, headers=doctor_headers)
        assert response.status_code == 201, response.text
        return response.json()

    return _create
