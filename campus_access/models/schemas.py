# =======================================================================================
# campus_access/models/schemas.py - Pydantic Models
# =======================================================================================
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator
from .enums import TapType

# ========== Cardholders ==========
class CardholderCreate(BaseModel):
    """Registration payload. Presence/emptiness is checked by the registry service."""
    rfid: Optional[str] = Field(None, description="RFID badge identifier")
    student_id: Optional[str] = Field(None, description="Institution student/staff number")
    name: Optional[str] = Field(None, description="Cardholder's full name")
    email: Optional[str] = Field(None, description="Contact e-mail, unique per cardholder")
    program: Optional[str] = Field(None, description="Enrolled program")
    school: Optional[str] = Field(None, description="School or faculty")
    balance: Optional[Decimal] = Field(None, description="Balance supplied by the payment system")
    type: Optional[str] = Field(None, description="student | staff | visitor")

    @field_validator("balance", mode="before")
    @classmethod
    def blank_balance_is_missing(cls, value):
        # the registration form posts "" when the balance box is left empty
        if isinstance(value, str) and not value.strip():
            return None
        return value

class Cardholder(BaseModel):
    """Cardholder as stored."""
    rfid: str
    student_id: str
    name: str
    email: str
    program: str
    school: str
    balance: Decimal
    type: str
    created_at: datetime
    updated_at: datetime

class ImportSummary(BaseModel):
    inserted: int
    duplicates: int
    invalid: int

# ========== Taps ==========
class TapCreate(BaseModel):
    rfid: Optional[str] = Field(None, description="Badge that was tapped")
    tap_type: Optional[str] = Field(None, description="entry | exit")

class TapEvent(BaseModel):
    """Immutable tap record with the cardholder snapshot taken at tap time."""
    id: int
    rfid: str
    tap_type: TapType
    tap_time: datetime
    user_name: Optional[str] = None
    user_balance: Optional[Decimal] = None
    user_type: Optional[str] = None

class CardholderProfile(Cardholder):
    taps: List[TapEvent] = Field(default_factory=list)

# ========== Serial reader bridge ==========
class ReaderMessage(BaseModel):
    t: str
    id: Optional[int] = None
    uid: Optional[str] = None
    dir: Optional[str] = None

# ========== Errors ==========
class ErrorResponse(BaseModel):
    error: str

# ========== Health for dashboard ==========
class HealthResponse(BaseModel):
    status: str                 # "ok" | "error"
    dataAvailable: bool
    message: Optional[str] = None

# ========== Analytics ==========
class Summary(BaseModel):
    total_cardholders: int
    total_taps: int
    inside_now: int

class AnalyticsResponse(BaseModel):
    summary: Summary
