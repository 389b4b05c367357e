# =======================================================================================
# campus_access/models/enums.py - Enums and Constants
# =======================================================================================
from enum import Enum
from typing import Literal, get_args

# Type aliases for better type hints
CardholderType = Literal["student", "staff", "visitor"]
TapType = Literal["entry", "exit"]
PresenceState = Literal["OUTSIDE", "INSIDE"]

CARDHOLDER_TYPES = get_args(CardholderType)
TAP_TYPES = get_args(TapType)
DEFAULT_CARDHOLDER_TYPE: CardholderType = "student"

class ReaderEventCode(Enum):
    """Event codes echoed back to the serial reader bridge."""
    DENIED = 0
    ENTRY = 1
    EXIT = 2

# Column limits shared by the schema and the input validators
TEXT_MAX_LENGTH = 255
BALANCE_PRECISION = 12   # total digits
BALANCE_SCALE = 2        # digits after the decimal point
