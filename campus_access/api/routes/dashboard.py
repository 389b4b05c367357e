# =======================================================================================
# campus_access/api/routes/dashboard.py
# =======================================================================================

from fastapi import APIRouter, Depends

from ...database import DatabaseManager
from ...models.schemas import AnalyticsResponse, HealthResponse, Summary
from ...services import DashboardService
from ..dependencies import get_dashboard, get_db

router = APIRouter()


@router.get("/analytics", response_model=AnalyticsResponse)
def get_analytics(dashboard: DashboardService = Depends(get_dashboard)):
    return AnalyticsResponse(summary=Summary(**dashboard.get_summary()))


@router.get("/health", response_model=HealthResponse)
def api_health(db: DatabaseManager = Depends(get_db)):
    if db.is_available():
        return HealthResponse(status="ok", dataAvailable=True, message=None)
    return HealthResponse(status="error", dataAvailable=False, message="Database unavailable")
