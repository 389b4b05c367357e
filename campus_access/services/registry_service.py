# =======================================================================================
# campus_access/services/registry_service.py - Cardholder Registry Service
# =======================================================================================
import io
import csv
import logging
from typing import Optional, List
from pydantic import ValidationError
from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError
from ..config import config
from ..database import DatabaseManager, USER_COLUMN_TYPES, store_errors, users
from ..models.schemas import Cardholder, CardholderCreate, ImportSummary
from ..utils.exceptions import (
    CardholderNotFoundError,
    ConflictError,
    InvalidInputError,
)
from ..utils.validators import CardholderValidator

logger = logging.getLogger(__name__)

USER_COLUMNS = "rfid, student_id, name, email, program, school, balance, type, created_at, updated_at"
CONFLICT_MESSAGE = "A student with this RFID, student ID or email already exists."
SEARCH_LIMIT = 10


def escape_like(value: str) -> str:
    """Make %, _ and the escape character '!' match literally in LIKE patterns."""
    return value.replace("!", "!!").replace("%", "!%").replace("_", "!_")


class RegistryService:
    """Cardholder identity and uniqueness."""

    def __init__(self, db: DatabaseManager, validator: Optional[CardholderValidator] = None):
        self.db = db
        self.validator = validator or CardholderValidator()

    # ----------------- helpers -----------------
    @staticmethod
    def _select(where: str):
        return text(f"SELECT {USER_COLUMNS} FROM users {where}").columns(**USER_COLUMN_TYPES)

    def lookup(self, conn: Connection, rfid: str) -> Optional[Cardholder]:
        """Resolve a cardholder on an already open connection (None when absent)."""
        row = conn.execute(self._select("WHERE rfid = :rfid"), {"rfid": rfid}).mappings().first()
        return Cardholder(**row) if row else None

    @staticmethod
    def _find_conflict(conn: Connection, row: dict) -> Optional[str]:
        existing = conn.execute(
            text("""
                SELECT rfid FROM users
                WHERE rfid = :rfid OR student_id = :student_id OR email = :email
                LIMIT 1
            """),
            {"rfid": row["rfid"], "student_id": row["student_id"], "email": row["email"]},
        ).first()
        return existing[0] if existing else None

    # ----------------- reads -----------------
    def list_cardholders(self, limit: Optional[int] = None, offset: int = 0) -> List[Cardholder]:
        """List cardholders, newest registrations first, bounded by limit/offset."""
        if limit is None:
            limit = config.LIST_DEFAULT_LIMIT
        if limit < 1 or offset < 0:
            raise InvalidInputError("limit must be positive and offset non-negative")
        limit = min(limit, config.LIST_MAX_LIMIT)

        with store_errors("list cardholders"):
            with self.db.get_connection() as conn:
                rows = conn.execute(
                    self._select("ORDER BY created_at DESC, rfid LIMIT :limit OFFSET :offset"),
                    {"limit": limit, "offset": offset},
                ).mappings().all()
        return [Cardholder(**row) for row in rows]

    def get_cardholder(self, rfid: str) -> Cardholder:
        with store_errors("get cardholder"):
            with self.db.get_connection() as conn:
                cardholder = self.lookup(conn, rfid)
        if cardholder is None:
            raise CardholderNotFoundError()
        return cardholder

    def search_cardholders(self, query: str) -> List[Cardholder]:
        """
        Search by RFID, student ID or email (exact), falling back to a
        substring match on name, student ID or RFID.
        """
        query = (query or "").strip()
        if not query:
            raise InvalidInputError("Search query is required")

        with store_errors("search cardholders"):
            with self.db.get_connection() as conn:
                rows = conn.execute(
                    self._select("""
                        WHERE rfid = :q OR student_id = :q OR email = :q
                        ORDER BY created_at DESC, rfid
                        LIMIT :limit
                    """),
                    {"q": query, "limit": SEARCH_LIMIT},
                ).mappings().all()

                if not rows:
                    rows = conn.execute(
                        self._select("""
                            WHERE name LIKE :like ESCAPE '!'
                               OR student_id LIKE :like ESCAPE '!'
                               OR rfid LIKE :like ESCAPE '!'
                            ORDER BY created_at DESC, rfid
                            LIMIT :limit
                        """),
                        {"like": f"%{escape_like(query)}%", "limit": SEARCH_LIMIT},
                    ).mappings().all()

        return [Cardholder(**row) for row in rows]

    # ----------------- writes -----------------
    def register_cardholder(self, request: CardholderCreate) -> Cardholder:
        """
        Register a new cardholder.

        Validation happens before any store access. The duplicate pre-check
        only gives a friendly answer; the UNIQUE/PRIMARY KEY constraints on
        rfid, student_id and email decide when two registrations race, and
        the resulting IntegrityError is reported as a conflict too.
        """
        row = self.validator.validate_registration(request)

        with store_errors("register cardholder"):
            try:
                with self.db.get_connection() as conn:
                    if self._find_conflict(conn, row):
                        logger.info("Registration rejected, duplicate key for rfid=%s", row["rfid"])
                        raise ConflictError(CONFLICT_MESSAGE)

                    conn.execute(users.insert().values(**row))
                    created = self.lookup(conn, row["rfid"])
            except IntegrityError as exc:
                logger.warning("Registration for rfid=%s lost a uniqueness race: %s", row["rfid"], exc.orig)
                raise ConflictError(CONFLICT_MESSAGE) from exc

        logger.info("Registered cardholder rfid=%s student_id=%s", created.rfid, created.student_id)
        return created

    def import_cardholders_from_csv(self, data: bytes) -> ImportSummary:
        """
        Import cardholders from CSV.
        Header: rfid,student_id,name,email,program,school,balance,type
        Every row is registered on its own, so one bad row never undoes the others.
        """
        try:
            reader = csv.DictReader(io.StringIO(data.decode("utf-8-sig")))
        except UnicodeDecodeError:
            raise InvalidInputError("Invalid CSV encoding, expected UTF-8")

        inserted = duplicates = invalid = 0
        try:
            for raw in reader:
                fields = {}
                for key, value in raw.items():
                    name = (key or "").strip().lower()
                    if name in CardholderCreate.model_fields:
                        fields[name] = value
                try:
                    self.register_cardholder(CardholderCreate(**fields))
                    inserted += 1
                except ConflictError:
                    duplicates += 1
                except (InvalidInputError, ValidationError):
                    invalid += 1
        except csv.Error as exc:
            # rows before the broken line stay registered
            logger.warning("CSV import stopped at line %d: %s", reader.line_num, exc)
            raise InvalidInputError(f"Malformed CSV at line {reader.line_num}")

        logger.info("CSV import finished: %d inserted, %d duplicates, %d invalid", inserted, duplicates, invalid)
        return ImportSummary(inserted=inserted, duplicates=duplicates, invalid=invalid)
