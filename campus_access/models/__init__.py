# =======================================================================================
# campus_access/models/__init__.py - Models Package
# =======================================================================================
from .schemas import *
from .enums import *

__all__ = [
    "CardholderCreate", "Cardholder", "CardholderProfile", "ImportSummary",
    "TapCreate", "TapEvent", "ReaderMessage", "ErrorResponse", "HealthResponse",
    "Summary", "AnalyticsResponse", "CardholderType", "TapType", "PresenceState",
    "CARDHOLDER_TYPES", "TAP_TYPES", "DEFAULT_CARDHOLDER_TYPE", "ReaderEventCode",
    "TEXT_MAX_LENGTH", "BALANCE_PRECISION", "BALANCE_SCALE",
]
