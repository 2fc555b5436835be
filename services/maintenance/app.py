import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from schoolhub.config import get_settings
from schoolhub.database import Base, engine
from schoolhub.dependencies import get_booking_store, require_service_key
from schoolhub.errors import StorageError, install_error_handlers
from schoolhub.lifecycle import sweep_complete_expired_approved, sweep_delete_expired_completed
from schoolhub.logging_middleware import add_audit_middleware, configure_app_logging
from schoolhub.rate_limit import SWEEP_LIMIT, apply_rate_limiter, limiter
from schoolhub.schemas import SweepResult
from schoolhub.store import BookingStore

settings = get_settings()
logger = logging.getLogger("schoolhub.maintenance")


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.run_db_migrations:
        Base.metadata.create_all(bind=engine)
    yield


def create_app() -> FastAPI:
    fastapi_app = FastAPI(title="Maintenance Service", version="1.0.0", lifespan=lifespan)
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    apply_rate_limiter(fastapi_app)
    add_audit_middleware(fastapi_app, "maintenance")
    install_error_handlers(fastapi_app, "maintenance")
    configure_app_logging()
    return fastapi_app


app = create_app()


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok", "service": "maintenance"}


def _sweep_failed(name: str, exc: StorageError) -> JSONResponse:
    logger.error("Sweep %s failed: %s", name, exc.message)
    return JSONResponse(status_code=500, content={"error": exc.public_message})


@app.post(
    "/maintenance/update-booking-status",
    response_model=SweepResult,
    response_model_exclude_none=True,
    dependencies=[Depends(require_service_key)],
)
@limiter.limit(SWEEP_LIMIT)
def complete_expired_bookings(request: Request, store: BookingStore = Depends(get_booking_store)):
    """Mark approved bookings whose end time has passed as completed."""
    try:
        return sweep_complete_expired_approved(store)
    except StorageError as exc:
        return _sweep_failed("update-booking-status", exc)


@app.post(
    "/maintenance/cleanup-expired-bookings",
    response_model=SweepResult,
    response_model_exclude_none=True,
    dependencies=[Depends(require_service_key)],
)
@limiter.limit(SWEEP_LIMIT)
def cleanup_expired_bookings(request: Request, store: BookingStore = Depends(get_booking_store)):
    """Delete completed bookings whose end time has passed."""
    try:
        return sweep_delete_expired_completed(store)
    except StorageError as exc:
        return _sweep_failed("cleanup-expired-bookings", exc)
