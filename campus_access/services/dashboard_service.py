# =======================================================================================
# campus_access/services/dashboard_service.py
# =======================================================================================

from typing import List, Dict
from sqlalchemy import text

from ..database import DatabaseManager, TAP_COLUMN_TYPES, store_errors
from ..models.schemas import TapEvent
from ..utils.exceptions import InvalidInputError
from .tap_ledger import TAP_COLUMNS

RECENT_TAPS_DEFAULT = 50
RECENT_TAPS_MAX = 1000


class DashboardService:
    """Aggregated counts and the recent-taps feed for the dashboard."""

    def __init__(self, db: DatabaseManager):
        self.db = db

    # ---------- summary ----------

    def get_summary(self) -> Dict[str, int]:
        with store_errors("dashboard summary"):
            with self.db.get_connection() as conn:
                total_cardholders = conn.execute(text("SELECT COUNT(*) FROM users")).scalar()
                total_taps = conn.execute(text("SELECT COUNT(*) FROM taps")).scalar()
                # cardholders whose latest tap is an entry
                inside_now = conn.execute(
                    text(
                        """
                        SELECT COUNT(*)
                        FROM taps t
                        WHERE t.tap_type = 'entry'
                          AND t.id = (
                              SELECT t2.id FROM taps t2
                              WHERE t2.rfid = t.rfid
                              ORDER BY t2.tap_time DESC, t2.id DESC
                              LIMIT 1
                          )
                        """
                    )
                ).scalar()

        return {
            "total_cardholders": int(total_cardholders or 0),
            "total_taps": int(total_taps or 0),
            "inside_now": int(inside_now or 0),
        }

    # ---------- recent taps ----------

    def get_recent_taps(self, limit: int = RECENT_TAPS_DEFAULT) -> List[TapEvent]:
        if limit < 1:
            raise InvalidInputError("limit must be positive")
        limit = min(limit, RECENT_TAPS_MAX)

        with store_errors("recent taps"):
            with self.db.get_connection() as conn:
                rows = conn.execute(
                    text(
                        f"""
                        SELECT {TAP_COLUMNS}
                        FROM taps
                        ORDER BY tap_time DESC, id DESC
                        LIMIT :limit
                        """
                    ).columns(**TAP_COLUMN_TYPES),
                    {"limit": limit},
                ).mappings().all()

        return [TapEvent(**row) for row in rows]
