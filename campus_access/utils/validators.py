# =======================================================================================
# campus_access/utils/validators.py - Validation Helpers
# =======================================================================================
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional
from .exceptions import InvalidInputError
from ..models.enums import (
    BALANCE_PRECISION,
    BALANCE_SCALE,
    CARDHOLDER_TYPES,
    DEFAULT_CARDHOLDER_TYPE,
    TAP_TYPES,
    TEXT_MAX_LENGTH,
    TapType,
)
from ..models.schemas import CardholderCreate

REQUIRED_CARDHOLDER_FIELDS = ("rfid", "name", "student_id", "email", "program", "school")
BALANCE_LIMIT = Decimal(10) ** (BALANCE_PRECISION - BALANCE_SCALE)
BALANCE_STEP = Decimal(1).scaleb(-BALANCE_SCALE)


class CardholderValidator:
    """Checks registration input before anything touches the store."""

    @staticmethod
    def require_text(value: Optional[str], field: str) -> str:
        """Return the trimmed value or raise when missing/blank/too long."""
        if value is None or not str(value).strip():
            raise InvalidInputError(f"Field '{field}' is required")
        value = str(value).strip()
        if len(value) > TEXT_MAX_LENGTH:
            raise InvalidInputError(f"Field '{field}' must be at most {TEXT_MAX_LENGTH} characters")
        return value

    @staticmethod
    def require_rfid(value: Optional[str]) -> str:
        # badges are addressed as /students/{rfid}, a slash could never be routed back
        rfid = CardholderValidator.require_text(value, "rfid")
        if "/" in rfid:
            raise InvalidInputError("Field 'rfid' must not contain '/'")
        return rfid

    @staticmethod
    def normalize_balance(value: Any) -> Decimal:
        """Decimal balance that fits NUMERIC(12, 2) without rounding; None means 0."""
        if value is None:
            return Decimal("0")
        try:
            balance = value if isinstance(value, Decimal) else Decimal(str(value))
        except InvalidOperation:
            raise InvalidInputError("Field 'balance' must be a decimal number")
        if not balance.is_finite():
            raise InvalidInputError("Field 'balance' must be a decimal number")
        if abs(balance) >= BALANCE_LIMIT:
            raise InvalidInputError(
                f"Field 'balance' allows at most {BALANCE_PRECISION - BALANCE_SCALE} integer digits"
            )
        # trailing zeros are fine ("12.500"), a third significant decimal is not
        if balance.quantize(BALANCE_STEP) != balance:
            raise InvalidInputError(f"Field 'balance' allows at most {BALANCE_SCALE} decimal places")
        return balance

    @staticmethod
    def normalize_type(value: Optional[str]) -> str:
        if value is None or not value.strip():
            return DEFAULT_CARDHOLDER_TYPE
        value = value.strip().lower()
        if value not in CARDHOLDER_TYPES:
            raise InvalidInputError(
                f"Field 'type' must be one of: {', '.join(CARDHOLDER_TYPES)}"
            )
        return value

    def validate_registration(self, request: CardholderCreate) -> Dict[str, Any]:
        """
        Validate a registration request and return the normalized row values
        (trimmed strings, Decimal balance defaulting to 0, type defaulting to 'student').
        """
        row: Dict[str, Any] = {
            field: self.require_text(getattr(request, field), field)
            for field in REQUIRED_CARDHOLDER_FIELDS
        }
        row["rfid"] = self.require_rfid(row["rfid"])
        row["balance"] = self.normalize_balance(request.balance)
        row["type"] = self.normalize_type(request.type)
        return row


class TapValidator:
    """Checks tap input before anything touches the store."""

    @staticmethod
    def validate_tap(rfid: Optional[str], tap_type: Optional[str]) -> tuple:
        rfid = CardholderValidator.require_text(rfid, "rfid")
        if tap_type is None or tap_type.strip().lower() not in TAP_TYPES:
            raise InvalidInputError("Field 'tap_type' must be 'entry' or 'exit'")
        normalized: TapType = tap_type.strip().lower()
        return rfid, normalized
