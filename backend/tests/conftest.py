import os

# Point the application at the test database before anything imports it
TEST_DATABASE_URL = "sqlite:///./test.db"
os.environ["DATABASE_URL"] = TEST_DATABASE_URL

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient
from uuid import uuid4

from backend.app.models.models import Base, BudgetPeriod, Transaction, PeriodKind
from backend.app.database import get_db_session
from backend.app.main import app
from backend.app.schemas.periods import PeriodUpsert
from backend.app.services.period_service import upsert_period

@pytest.fixture(scope="session")
def db_engine():
    engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    yield engine
    # Teardown - drop all tables
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    if os.path.exists("./test.db"):
        os.remove("./test.db")

@pytest.fixture(scope="function")
def db_session(db_engine):
    """Returns a fresh SQLAlchemy session for each test"""
    Session = sessionmaker(bind=db_engine)
    session = Session()

    # Clear out test data from previous run
    session.query(Transaction).delete()
    session.query(BudgetPeriod).delete()
    session.commit()

    yield session
    session.close()

@pytest.fixture
def client(db_session):
    """Test client fixture that uses the db_session fixture"""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db_session] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()

@pytest.fixture
def user_id():
    return str(uuid4())

@pytest.fixture
def other_user_id():
    return str(uuid4())

@pytest.fixture
def auth_headers(user_id):
    return {"X-User-Id": user_id}

@pytest.fixture
def monthly_period(db_session, user_id):
    """March 2025 monthly period: 3100 available over 31 days, 100 a day"""
    return upsert_period(db_session, user_id, PeriodUpsert(
        income_amount=5000.0,
        target_amount=1900.0,
        month=3,
        year=2025,
    ))

@pytest.fixture
def weekly_period(db_session, user_id):
    """Week 1 of March 2025: 35 available over 7 days, 5 a day"""
    return upsert_period(db_session, user_id, PeriodUpsert(
        income_amount=135.0,
        target_amount=100.0,
        period_kind=PeriodKind.WEEKLY,
        month=3,
        year=2025,
        week_number=1,
    ))
