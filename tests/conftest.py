"""Pytest fixtures for testing"""

import pytest
from decimal import Decimal
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker, Session
from lending_ledger.api.main import create_app
from lending_ledger.infrastructure.database.models import Base
from lending_ledger.infrastructure.database.session import build_engine, get_db
from lending_ledger.services.ledger_service import LedgerService
from lending_ledger.domain.models import CreatedLoan


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = build_engine(TEST_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def service(db: Session) -> LedgerService:
    return LedgerService(db)


@pytest.fixture
def standard_loan(service: LedgerService) -> CreatedLoan:
    """120000 at 10% for 1 year: total 132000, EMI 11000, 12 EMIs"""
    service.ensure_customer("cust_1")
    return service.create_loan(
        customer_id="cust_1",
        principal=Decimal("120000"),
        loan_period_years=1,
        interest_rate_yearly=Decimal("10"),
    )


@pytest.fixture
def session_factory(db: Session) -> sessionmaker:
    """Factory for extra sessions on the test database, e.g. one per thread"""
    return TestingSessionLocal
