# =======================================================================================
# campus_access/utils/__init__.py - Utils Package
# =======================================================================================
from .exceptions import *
from .validators import *

__all__ = [
    "CampusAccessError", "InvalidInputError", "ConflictError", "NotFoundError",
    "CardholderNotFoundError", "TransientStoreError", "CardholderValidator",
    "TapValidator", "REQUIRED_CARDHOLDER_FIELDS",
]
