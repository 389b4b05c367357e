# =======================================================================================
# campus_access/services/reader_service.py - Serial Reader Bridge Requests
# =======================================================================================
import time
import logging
from collections import OrderedDict
from typing import Any, Callable, Dict, Optional, Tuple
from ..models.enums import ReaderEventCode
from ..models.schemas import ReaderMessage
from ..utils.exceptions import CampusAccessError, TransientStoreError
from .tap_ledger import TapLedgerService

logger = logging.getLogger(__name__)

# (result, event, name, balance)
Decision = Tuple[str, str, Optional[str], Optional[str]]
DENIED: Decision = ("FAIL", "DENIED", None, None)


class ReaderService:
    """Turns badge scans from the reader bridge into recorded taps."""

    def __init__(
        self,
        ledger: TapLedgerService,
        debounce_seconds: float = 0.5,
        cache_max: int = 512,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ledger = ledger
        self.clock = clock

        # ----------------------------------------------------------------------
        # Debounce cache: a reader repeats the same badge several times per
        # physical tap, every read within the TTL is treated as one scan.
        # key = (uid, dir), value = (timestamp, decision)
        # ----------------------------------------------------------------------
        self._scan_cache: "OrderedDict[tuple, tuple]" = OrderedDict()
        self._scan_cache_ttl = debounce_seconds
        self._scan_cache_max = cache_max

    # ----------------------------------------------------------------------
    # Cache helpers
    # ----------------------------------------------------------------------
    def _get_cached_decision(self, key: tuple) -> Optional[Decision]:
        item = self._scan_cache.get(key)
        if not item:
            return None

        ts, decision = item
        if self.clock() - ts > self._scan_cache_ttl:
            self._scan_cache.pop(key, None)
            return None

        self._scan_cache.move_to_end(key)
        return decision

    def _store_decision(self, key: tuple, decision: Decision) -> None:
        self._scan_cache[key] = (self.clock(), decision)
        while len(self._scan_cache) > self._scan_cache_max:
            self._scan_cache.popitem(last=False)

    # ----------------------------------------------------------------------
    # Core request handler
    # ----------------------------------------------------------------------
    def process_reader_message(self, message: ReaderMessage) -> Optional[Dict[str, Any]]:
        """Record one scan request and build the reply; None for non-request frames."""
        if message.t != "req" or not message.uid:
            return None

        direction = message.dir.strip().lower() if message.dir else None
        cache_key = (message.uid, direction)
        cached = self._get_cached_decision(cache_key)
        if cached is not None:
            logger.debug("Debounced repeat read uid=%s", message.uid)
            return self.create_response_message(message, *cached)

        try:
            event = self.ledger.record_reader_tap(message.uid, direction)
        except TransientStoreError:
            # not cached, the next read retries against the store
            return self.create_response_message(message, *DENIED)
        except CampusAccessError as exc:
            logger.info("Reader scan uid=%s denied: %s", message.uid, exc.message)
            self._store_decision(cache_key, DENIED)
            return self.create_response_message(message, *DENIED)

        balance = str(event.user_balance) if event.user_balance is not None else None
        decision: Decision = ("PASS", event.tap_type.upper(), event.user_name, balance)
        self._store_decision(cache_key, decision)
        return self.create_response_message(message, *decision)

    # ----------------------------------------------------------------------
    # Response builder
    # ----------------------------------------------------------------------
    def create_response_message(
        self,
        message: ReaderMessage,
        result: str,
        event: str,
        name: Optional[str],
        balance: Optional[str],
    ) -> Dict[str, Any]:
        """JSON-serializable reply for the reader bridge."""
        return {
            "t": "resp",
            "id": message.id,
            "status": 1 if result == "PASS" else 0,
            "event": ReaderEventCode[event].value,
            "name": name or "Guest",
            "balance": balance,
            "ts": int(time.time()),
        }
