# mla_office/tests/conftest.py

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from mla_office.core.db import Base, get_db
from mla_office.exports.publisher import ArtifactPublisher
from mla_office.users.models import RoleModulePermission, User, UserModulePermission
from mla_office.utils.s3_utils import S3Utils
from mla_office.voters.models import PartNumber, Voter, VoterMobileNumber
from mla_office.worker.app import app as celery_app

EXPORT_ROLE_ID = 7
STORAGE_BASE_URL = "https://files.example.com"


@pytest.fixture
def engine():
    """In-memory SQLite shared by every session of one test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    """Database session fixture for testing"""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def export_user(db_session):
    """User whose role grants the back-office module"""
    user = User(id="user-export", email="officer@example.com", role_id=EXPORT_ROLE_ID)
    db_session.add(user)
    db_session.add(RoleModulePermission(role_id=EXPORT_ROLE_ID, module_key="back-office", has_access=True))
    db_session.commit()
    return user


@pytest.fixture
def other_user(db_session, export_user):
    """Second entitled user, for ownership checks"""
    user = User(id="user-other", email="other@example.com", role_id=EXPORT_ROLE_ID)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def restricted_user(db_session, export_user):
    """User of the export role with the module switched off individually"""
    user = User(id="user-restricted", email="restricted@example.com", role_id=EXPORT_ROLE_ID)
    db_session.add(user)
    db_session.add(UserModulePermission(user_id=user.id, module_key="back-office", has_access=False))
    db_session.commit()
    return user


@pytest.fixture
def voters(db_session):
    """
    Two voters in part 12 / ward 3:
    - Asha Devi (F) with two mobile numbers
    - Bharat Kumar (M) with none
    plus Chitra (F, part 13, ward 4) with one number.
    """
    db_session.add_all([
        PartNumber(part_no="12", ward_no="3", booth_name="Govt School Hall"),
        PartNumber(part_no="13", ward_no="4", booth_name="Community Centre"),
    ])
    db_session.add_all([
        Voter(
            epic_number="ABC1234567", full_name="Asha Devi", relation_type="Husband",
            relation_name="Ramesh", ac_no="45", part_no="12", house_number="12/A",
            religion="Hindu", age=34, gender="F", is_voted_2024=True,
            mobile_no_primary="9876500001", address="Main Road", pincode="110001",
        ),
        Voter(
            epic_number="XYZ7654321", full_name="Bharat Kumar", relation_type="Father",
            relation_name="Suresh", ac_no="45", part_no="12", house_number="7",
            religion="Hindu", age=61, gender="M", is_voted_2024=False,
            address="Market Lane", pincode="110001",
        ),
        Voter(
            epic_number="LMN5555555", full_name="Chitra Rao", ac_no="45", part_no="13",
            age=25, gender="F", is_voted_2024=False, mobile_no_secondary="9876500009",
        ),
    ])
    db_session.flush()
    db_session.add_all([
        VoterMobileNumber(epic_number="ABC1234567", mobile_number="9876500002", sort_order=2),
        VoterMobileNumber(epic_number="ABC1234567", mobile_number="9876500001", sort_order=1),
        VoterMobileNumber(epic_number="LMN5555555", mobile_number="9876500009", sort_order=1),
    ])
    db_session.commit()


@pytest.fixture
def s3_client():
    """boto3 S3 client stand-in"""
    return MagicMock()


@pytest.fixture
def storage(s3_client, monkeypatch):
    """S3Utils over a mocked client, with a fixed public base URL"""
    from mla_office.core.config import settings

    monkeypatch.setattr(settings, "s3_public_base_url", STORAGE_BASE_URL)
    return S3Utils(bucket_name="mla-office-test", client=s3_client)


@pytest.fixture
def publisher(storage):
    return ArtifactPublisher(storage=storage, prefix="exports")


@pytest.fixture
def wired_background(session_factory, storage, monkeypatch):
    """Point the Celery task at the test database and storage."""
    monkeypatch.setattr("mla_office.exports.tasks.SessionLocal", session_factory)
    monkeypatch.setattr("mla_office.exports.publisher.s3_utils", storage)


@pytest.fixture
def eager_celery():
    """Run Celery tasks inline while the test runs"""
    previous = celery_app.conf.task_always_eager
    celery_app.conf.task_always_eager = True
    try:
        yield celery_app
    finally:
        celery_app.conf.task_always_eager = previous


@pytest.fixture
def client(session_factory):
    """FastAPI test client using the test database"""
    from mla_office.main import app

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
