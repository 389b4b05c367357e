# =======================================================================================
# campus_access/services/tap_ledger.py - Tap Ledger Service
# =======================================================================================
import logging
from typing import List, Optional
from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError
from ..database import DatabaseManager, TAP_COLUMN_TYPES, store_errors, taps
from ..models.enums import PresenceState, TapType
from ..models.schemas import CardholderProfile, TapEvent
from ..utils.exceptions import CardholderNotFoundError, ConflictError
from ..utils.validators import CardholderValidator, TapValidator
from .registry_service import RegistryService

logger = logging.getLogger(__name__)

TAP_COLUMNS = "id, rfid, tap_type, tap_time, user_name, user_balance, user_type"


class TapLedgerService:
    """Append-only log of entry/exit taps."""

    def __init__(self, db: DatabaseManager, registry: RegistryService, enforce_alternation: bool = False):
        self.db = db
        self.registry = registry
        self.enforce_alternation = enforce_alternation

    # ----------------- presence state machine -----------------
    @staticmethod
    def presence_state(last_tap_type: Optional[str]) -> PresenceState:
        """No taps or a last 'exit' -> OUTSIDE, last 'entry' -> INSIDE."""
        return "INSIDE" if last_tap_type == "entry" else "OUTSIDE"

    @staticmethod
    def next_tap_type(state: PresenceState) -> TapType:
        return "exit" if state == "INSIDE" else "entry"

    # ----------------- helpers -----------------
    @staticmethod
    def _select(where: str):
        return text(f"SELECT {TAP_COLUMNS} FROM taps {where}").columns(**TAP_COLUMN_TYPES)

    @staticmethod
    def _last_tap_type(conn: Connection, rfid: str) -> Optional[str]:
        row = conn.execute(
            text("""
                SELECT tap_type FROM taps
                WHERE rfid = :rfid
                ORDER BY tap_time DESC, id DESC
                LIMIT 1
            """),
            {"rfid": rfid},
        ).first()
        return row[0] if row else None

    def _history(self, conn: Connection, rfid: str) -> List[TapEvent]:
        rows = conn.execute(
            self._select("WHERE rfid = :rfid ORDER BY tap_time DESC, id DESC"),
            {"rfid": rfid},
        ).mappings().all()
        return [TapEvent(**row) for row in rows]

    def _append(self, rfid: str, tap_type: Optional[TapType]) -> TapEvent:
        """
        Resolve the cardholder, snapshot name/balance/type and insert the tap,
        all inside one transaction. tap_type None means "whatever the presence
        state expects next".
        """
        with store_errors("record tap"):
            try:
                with self.db.get_connection() as conn:
                    cardholder = self.registry.lookup(conn, rfid)
                    if cardholder is None:
                        logger.info("Tap rejected, unknown badge rfid=%s", rfid)
                        raise CardholderNotFoundError()

                    if tap_type is None or self.enforce_alternation:
                        state = self.presence_state(self._last_tap_type(conn, rfid))
                        expected = self.next_tap_type(state)
                        if tap_type is None:
                            tap_type = expected
                        elif tap_type != expected:
                            logger.info("Tap rejected, rfid=%s is %s and tapped %s", rfid, state, tap_type)
                            raise ConflictError(
                                f"Cardholder is {state.lower()}; expected an '{expected}' tap"
                            )

                    result = conn.execute(
                        taps.insert().values(
                            rfid=rfid,
                            tap_type=tap_type,
                            user_name=cardholder.name,
                            user_balance=cardholder.balance,
                            user_type=cardholder.type,
                        )
                    )
                    row = conn.execute(
                        self._select("WHERE id = :id"), {"id": result.inserted_primary_key[0]}
                    ).mappings().first()
            except IntegrityError as exc:
                # foreign key on taps.rfid refused the insert
                logger.warning("Tap for rfid=%s refused by the store: %s", rfid, exc.orig)
                raise CardholderNotFoundError() from exc

        event = TapEvent(**row)
        logger.info("Recorded %s tap id=%s rfid=%s", event.tap_type, event.id, event.rfid)
        return event

    # ----------------- operations -----------------
    def record_tap(self, rfid: Optional[str], tap_type: Optional[str]) -> TapEvent:
        rfid, tap_type = TapValidator.validate_tap(rfid, tap_type)
        return self._append(rfid, tap_type)

    def record_reader_tap(self, rfid: Optional[str], tap_type: Optional[str] = None) -> TapEvent:
        """Record a scan coming from a reader that may not know the direction."""
        if tap_type is None:
            return self._append(CardholderValidator.require_text(rfid, "rfid"), None)
        return self.record_tap(rfid, tap_type)

    def get_tap_history(self, rfid: str) -> List[TapEvent]:
        """All taps of a cardholder, most recent first."""
        with store_errors("get tap history"):
            with self.db.get_connection() as conn:
                if self.registry.lookup(conn, rfid) is None:
                    raise CardholderNotFoundError()
                return self._history(conn, rfid)

    def get_cardholder_profile(self, rfid: str) -> CardholderProfile:
        """Cardholder fields plus the full descending tap history."""
        with store_errors("get cardholder profile"):
            with self.db.get_connection() as conn:
                cardholder = self.registry.lookup(conn, rfid)
                if cardholder is None:
                    raise CardholderNotFoundError()
                history = self._history(conn, rfid)
        return CardholderProfile(**cardholder.model_dump(), taps=history)
