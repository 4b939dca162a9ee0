import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from upishield.api.deps import get_store
from upishield.api.security import rate_limiter
from upishield.api.server import app
from upishield.database import Base
from upishield.schemas.analyze_schemas import TransactionRecord, TrustedContact, UserBehaviorProfile
from upishield.services.sql_store import SqlStore
from upishield.services.store_service import InMemoryStore
from upishield.utils.logging_config import metrics


@pytest.fixture
def session_factory(tmp_path):
    """Fresh SQLite database per test; file-backed so worker threads get their own connections."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'upishield-test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def sql_store(session_factory):
    return SqlStore(session_factory)


@pytest.fixture
def client(sql_store):
    """FastAPI test client backed by the in-memory database."""
    app.dependency_overrides[get_store] = lambda: sql_store
    rate_limiter.reset()
    metrics.reset()
    yield TestClient(app)
    app.dependency_overrides.clear()
    rate_limiter.reset()


@pytest.fixture
def store():
    """Empty in-memory store."""
    return InMemoryStore()


@pytest.fixture
def seeded_store():
    """In-memory store with one user's contacts, history and profile."""
    s = InMemoryStore()
    s.add_contact("user-1", TrustedContact(upi_id="rahul@okaxis", contact_name="Rahul", status="trusted"))
    s.add_contact("user-1", TrustedContact(upi_id="shady@ybl", status="flagged"))
    s.add_transaction("user-1", TransactionRecord(amount=800, receiver_upi_id="grocer@paytm", transaction_hour=10))
    s.set_profile("user-1", UserBehaviorProfile(
        avg_transaction_amount=900.0,
        max_transaction_amount=2000.0,
        transaction_count=4,
        typical_transaction_hours=[9, 10, 11, 18],
    ))
    s.upi_blacklist.report("fraud.king@ybl", reason="Fake KYC calls", severity="high")
    return s


@pytest.fixture
def sample_phishing_url():
    return "http://bit.ly/paytm-kyc"


@pytest.fixture
def sample_safe_url():
    return "https://www.google.com"
