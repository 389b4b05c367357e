# =======================================================================================
# campus_access/api/routes/taps.py - Tap Endpoints
# =======================================================================================
from typing import List
from fastapi import APIRouter, Depends, Query, status
from ...models.schemas import ErrorResponse, TapCreate, TapEvent
from ...services import DashboardService, TapLedgerService
from ...services.dashboard_service import RECENT_TAPS_DEFAULT, RECENT_TAPS_MAX
from ..dependencies import get_dashboard, get_ledger

router = APIRouter()


@router.post(
    "/taps",
    response_model=TapEvent,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
)
def record_tap(request: TapCreate, ledger: TapLedgerService = Depends(get_ledger)):
    """Append an entry/exit tap with a snapshot of the cardholder's name, balance and type."""
    return ledger.record_tap(request.rfid, request.tap_type)


@router.get("/taps", response_model=List[TapEvent])
def recent_taps(
    limit: int = Query(RECENT_TAPS_DEFAULT, ge=1, le=RECENT_TAPS_MAX),
    dashboard: DashboardService = Depends(get_dashboard),
):
    return dashboard.get_recent_taps(limit)
