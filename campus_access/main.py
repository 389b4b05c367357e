# =======================================================================================
# campus_access/main.py - FastAPI Application Entry Point
# =======================================================================================
import logging
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from .config import config
from .api.routes.students import router as students_router
from .api.routes.taps import router as taps_router
from .api.routes.dashboard import router as dashboard_router
from .database import DatabaseManager
from .logging_config import setup_logging
from .services import DashboardService, ReaderService, RegistryService, TapLedgerService
from .utils.exceptions import CampusAccessError
from .workers import SerialWorker

logger = logging.getLogger(__name__)


def _describe_validation_error(exc: RequestValidationError) -> str:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    return f"{location}: {message}" if location else message


def create_app(db: Optional[DatabaseManager] = None, start_reader: bool = True) -> FastAPI:
    setup_logging(config.LOG_LEVEL, config.LOG_FILE)

    app = FastAPI(
        title="Campus Access Tap Ledger API",
        version="1.0.0",
        description="RFID cardholder registry and entry/exit tap ledger",
        debug=config.API_DEBUG,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Store handle + services, one set per application instance
    db = db or DatabaseManager()
    registry = RegistryService(db)
    ledger = TapLedgerService(db, registry, enforce_alternation=config.TAP_ENFORCE_ALTERNATION)
    app.state.db = db
    app.state.registry = registry
    app.state.ledger = ledger
    app.state.dashboard = DashboardService(db)
    app.state.serial_worker = SerialWorker(
        ReaderService(ledger, debounce_seconds=config.READER_DEBOUNCE_SECONDS),
        config.SERIAL_PORT,
        config.SERIAL_BAUD,
        config.SERIAL_TIMEOUT,
    )

    # Routers
    app.include_router(students_router, prefix="/api", tags=["students"])
    app.include_router(taps_router, prefix="/api", tags=["taps"])
    app.include_router(dashboard_router, prefix="/api", tags=["dashboard"])

    @app.exception_handler(CampusAccessError)
    async def campus_access_error_handler(request: Request, exc: CampusAccessError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
        return JSONResponse(status_code=400, content={"error": _describe_validation_error(exc)})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal error"})

    @app.on_event("startup")
    async def startup_event():
        app.state.db.create_schema()
        if start_reader:
            app.state.serial_worker.start()
        logger.info("Campus access API started")

    @app.on_event("shutdown")
    async def shutdown_event():
        app.state.serial_worker.stop()

    return app


app = create_app()
