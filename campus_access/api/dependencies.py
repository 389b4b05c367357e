# =======================================================================================
# campus_access/api/dependencies.py - FastAPI Dependencies
# =======================================================================================
from fastapi import Request
from ..database import DatabaseManager
from ..services import DashboardService, RegistryService, TapLedgerService

def get_db(request: Request) -> DatabaseManager:
    """Store handle created by the application factory."""
    return request.app.state.db

def get_registry(request: Request) -> RegistryService:
    return request.app.state.registry

def get_ledger(request: Request) -> TapLedgerService:
    return request.app.state.ledger

def get_dashboard(request: Request) -> DashboardService:
    return request.app.state.dashboard
