# =======================================================================================
# campus_access/database.py - Database Management
# =======================================================================================
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional
from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    create_engine,
    event,
    func,
    text,
)
from sqlalchemy.engine import Connection, Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool
from .config import config
from .models.enums import BALANCE_PRECISION, BALANCE_SCALE, TEXT_MAX_LENGTH
from .utils.exceptions import CampusAccessError, TransientStoreError

logger = logging.getLogger(__name__)

metadata = MetaData()

# Balance precision shared by the users table and the tap snapshot
BALANCE_TYPE = Numeric(BALANCE_PRECISION, BALANCE_SCALE)

users = Table(
    "users",
    metadata,
    Column("rfid", String(TEXT_MAX_LENGTH), primary_key=True),
    Column("student_id", String(TEXT_MAX_LENGTH), nullable=False, unique=True),
    Column("name", String(TEXT_MAX_LENGTH), nullable=False),
    Column("email", String(TEXT_MAX_LENGTH), nullable=False, unique=True),
    Column("program", String(TEXT_MAX_LENGTH), nullable=False),
    Column("school", String(TEXT_MAX_LENGTH), nullable=False),
    Column("balance", BALANCE_TYPE, nullable=False, server_default=text("0")),
    Column("type", String(32), nullable=False, server_default=text("'student'")),
    Column("created_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), nullable=False, server_default=func.now()),
)

taps = Table(
    "taps",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("rfid", String(TEXT_MAX_LENGTH), ForeignKey("users.rfid"), nullable=False, index=True),
    Column("tap_type", String(8), nullable=False),
    Column("tap_time", DateTime(timezone=True), nullable=False, server_default=func.now()),
    Column("user_name", String(TEXT_MAX_LENGTH)),
    Column("user_balance", BALANCE_TYPE),
    Column("user_type", String(32)),
    CheckConstraint("tap_type IN ('entry', 'exit')", name="ck_taps_tap_type"),
)

# Result column types for raw SQL (text()) reads, so every backend hands
# back Decimal balances and datetime timestamps.
USER_COLUMN_TYPES = {
    "balance": BALANCE_TYPE,
    "created_at": DateTime(timezone=True),
    "updated_at": DateTime(timezone=True),
}
TAP_COLUMN_TYPES = {
    "user_balance": BALANCE_TYPE,
    "tap_time": DateTime(timezone=True),
}


def _engine_options(url: str, pool_size: int, max_overflow: int) -> Dict[str, Any]:
    """Pool / isolation settings per backend."""
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite":
        options: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if parsed.database in (None, "", ":memory:"):
            options["poolclass"] = StaticPool
        return options

    return {
        "pool_size": pool_size,
        "max_overflow": max_overflow,
        "pool_pre_ping": True,
        "isolation_level": "READ COMMITTED",
    }


@contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """
    Map unexpected store failures to TransientStoreError.

    The raw driver error is logged here and never surfaces in the public
    message. Domain errors raised inside the block pass through untouched.
    """
    try:
        yield
    except CampusAccessError:
        raise
    except SQLAlchemyError as exc:
        logger.exception("Store failure during %s", operation)
        raise TransientStoreError() from exc


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class DatabaseManager:
    """Owns the pooled engine and hands out one connection per unit of work."""

    def __init__(
        self,
        url: Optional[str] = None,
        pool_size: Optional[int] = None,
        max_overflow: Optional[int] = None,
    ):
        self.url = url or config.DB_URL
        self.engine: Engine = create_engine(
            self.url,
            future=True,
            **_engine_options(
                self.url,
                pool_size if pool_size is not None else config.DB_POOL_SIZE,
                max_overflow if max_overflow is not None else config.DB_MAX_OVERFLOW,
            ),
        )
        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)

    @contextmanager
    def get_connection(self) -> Iterator[Connection]:
        """Get a transactional connection; commits on success, rolls back on error."""
        with self.engine.begin() as conn:
            yield conn

    def create_schema(self) -> None:
        """Create the users and taps tables when they do not exist yet."""
        metadata.create_all(self.engine, checkfirst=True)

    def fetch_one(self, query: str, params: dict = None):
        """Fetch a single result."""
        with self.get_connection() as conn:
            result = conn.execute(text(query), params or {})
            return result.mappings().first()

    def is_available(self) -> bool:
        """Round-trip a trivial query; False when the store cannot be reached."""
        try:
            self.fetch_one("SELECT 1")
            return True
        except SQLAlchemyError as exc:
            logger.warning("Database health check failed: %s", exc)
            return False

    def dispose(self) -> None:
        self.engine.dispose()
