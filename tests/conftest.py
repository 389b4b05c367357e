# =======================================================================================
# tests/conftest.py - Shared Fixtures
# =======================================================================================
import pytest
from fastapi.testclient import TestClient
from campus_access.database import DatabaseManager
from campus_access.main import create_app
from campus_access.models.schemas import CardholderCreate
from campus_access.services import DashboardService, RegistryService, TapLedgerService


@pytest.fixture
def db(tmp_path):
    manager = DatabaseManager(f"sqlite:///{tmp_path / 'campus_access.db'}")
    manager.create_schema()
    yield manager
    manager.dispose()


@pytest.fixture
def registry(db):
    return RegistryService(db)


@pytest.fixture
def ledger(db, registry):
    return TapLedgerService(db, registry)


@pytest.fixture
def dashboard(db):
    return DashboardService(db)


@pytest.fixture
def make_cardholder():
    """Build a valid registration request, overriding any field."""
    def _make(**overrides) -> CardholderCreate:
        fields = {
            "rfid": "A1",
            "student_id": "S1",
            "name": "Ann",
            "email": "e@x.com",
            "program": "CS",
            "school": "X",
        }
        fields.update(overrides)
        return CardholderCreate(**fields)
    return _make


@pytest.fixture
def client(db):
    app = create_app(db=db, start_reader=False)
    with TestClient(app) as test_client:
        yield test_client
