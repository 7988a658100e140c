import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("RAZORPAY_KEY_ID", "rzp_test_key")
os.environ.setdefault("RAZORPAY_KEY_SECRET", "rzp_test_secret")
os.environ.setdefault("RAZORPAY_WEBHOOK_SECRET", "whsec_test")
os.environ.setdefault("LOG_FORMAT", "console")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from tutorix.api.deps import get_db, get_payment_gateway
from tutorix.core.permissions import CoachingRole
from tutorix.core.security import create_access_token
from tutorix.db.init_db import init_db
from tutorix.db.session import build_engine
from tutorix.main import create_app

from tests.support import (
    FakeRazorpayClient,
    FundAccountApi,
    make_assignment,
    make_coaching,
    make_gateway,
    make_member,
    make_record,
    make_structure,
)


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    yield session
    session.close()


@pytest.fixture
def razorpay_client():
    return FakeRazorpayClient()


@pytest.fixture
def fund_api():
    return FundAccountApi()


@pytest.fixture
def gateway(razorpay_client, fund_api):
    return make_gateway(razorpay_client, fund_api)


@pytest.fixture
def coaching(db):
    return make_coaching(db, owner_user_id="owner-1")


@pytest.fixture
def admin(db, coaching):
    return make_member(db, coaching, "admin-1", CoachingRole.ADMIN, name="Meera")


@pytest.fixture
def student(db, coaching):
    return make_member(db, coaching, "student-1", CoachingRole.STUDENT, name="Asha")


@pytest.fixture
def structure(db, coaching):
    return make_structure(db, coaching, "1000.00", allow_installments=True)


@pytest.fixture
def assignment(db, coaching, student, structure):
    return make_assignment(db, coaching, student, structure)


@pytest.fixture
def record(db, assignment):
    return make_record(db, assignment, "1000.00")


@pytest.fixture
def app(db, gateway):
    application = create_app()
    application.dependency_overrides[get_db] = lambda: db
    application.dependency_overrides[get_payment_gateway] = lambda: gateway
    return application


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def auth():
    def headers(user_id: str) -> dict:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}
    return headers
