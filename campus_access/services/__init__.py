# =======================================================================================
# campus_access/services/__init__.py - Services Package
# =======================================================================================
from .registry_service import RegistryService
from .tap_ledger import TapLedgerService
from .dashboard_service import DashboardService
from .reader_service import ReaderService

__all__ = ["RegistryService", "TapLedgerService", "DashboardService", "ReaderService"]
