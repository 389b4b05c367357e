# =======================================================================================
# campus_access/api/routes/students.py - Cardholder Endpoints
# =======================================================================================
from typing import List, Optional
from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from ...models.schemas import (
    Cardholder,
    CardholderCreate,
    CardholderProfile,
    ErrorResponse,
    ImportSummary,
    TapEvent,
)
from ...services import RegistryService, TapLedgerService
from ..dependencies import get_ledger, get_registry

router = APIRouter()


@router.get(
    "/students",
    response_model=List[Cardholder],
    responses={400: {"model": ErrorResponse}},
)
def list_students(
    query: Optional[str] = Query(None, description="Search by RFID, student ID, email or part of a name"),
    limit: Optional[int] = Query(None, ge=1, description="Page size, capped by LIST_MAX_LIMIT"),
    offset: int = Query(0, ge=0),
    registry: RegistryService = Depends(get_registry),
):
    """List cardholders page by page, or run the dashboard search box when `query` is given."""
    if query is not None:
        return registry.search_cardholders(query)
    return registry.list_cardholders(limit=limit, offset=offset)


@router.get(
    "/students/{rfid}",
    response_model=CardholderProfile,
    responses={404: {"model": ErrorResponse}},
)
def get_student(rfid: str, ledger: TapLedgerService = Depends(get_ledger)):
    """Cardholder profile with the full tap history, most recent first."""
    return ledger.get_cardholder_profile(rfid)


@router.get(
    "/students/{rfid}/taps",
    response_model=List[TapEvent],
    responses={404: {"model": ErrorResponse}},
)
def get_student_taps(rfid: str, ledger: TapLedgerService = Depends(get_ledger)):
    return ledger.get_tap_history(rfid)


@router.post(
    "/students",
    response_model=Cardholder,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
def register_student(request: CardholderCreate, registry: RegistryService = Depends(get_registry)):
    return registry.register_cardholder(request)


@router.post(
    "/students/import",
    response_model=ImportSummary,
    responses={400: {"model": ErrorResponse}},
)
def import_students(
    file: UploadFile = File(..., description="CSV: rfid,student_id,name,email,program,school,balance,type"),
    registry: RegistryService = Depends(get_registry),
):
    return registry.import_cardholders_from_csv(file.file.read())
