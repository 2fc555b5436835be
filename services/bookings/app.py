from contextlib import asynccontextmanager
from typing import List

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from schoolhub import bookings
from schoolhub.booking_validation import BookingForm
from schoolhub.config import get_settings
from schoolhub.database import Base, engine
from schoolhub.dependencies import get_actor, get_booking_store
from schoolhub.errors import install_error_handlers
from schoolhub.logging_middleware import add_audit_middleware, configure_app_logging
from schoolhub.models import RoomBooking
from schoolhub.rate_limit import READ_LIMIT, WRITE_LIMIT, apply_rate_limiter, limiter
from schoolhub.schemas import Actor, BookingRead, BookingStatusUpdate
from schoolhub.store import BookingStore

settings = get_settings()


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.run_db_migrations:
        Base.metadata.create_all(bind=engine)
    yield


def create_app() -> FastAPI:
    fastapi_app = FastAPI(title="Bookings Service", version="1.0.0", lifespan=lifespan)
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    apply_rate_limiter(fastapi_app)
    add_audit_middleware(fastapi_app, "bookings")
    install_error_handlers(fastapi_app, "bookings")
    configure_app_logging()
    Instrumentator().instrument(fastapi_app).expose(fastapi_app)
    return fastapi_app


app = create_app()


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok", "service": "bookings"}


@app.post("/bookings", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
@limiter.limit(WRITE_LIMIT)
def create_booking(
    request: Request,
    booking_in: BookingForm,
    actor: Actor = Depends(get_actor),
    store: BookingStore = Depends(get_booking_store),
) -> RoomBooking:
    """
    Book a classroom. The booking always starts out pending.

    Teachers book for themselves; administrators may book on behalf of any
    teacher. Overlapping bookings of the same classroom are accepted.
    """
    return bookings.create_booking(store, actor, booking_in)


@app.get("/bookings", response_model=List[BookingRead])
@limiter.limit(READ_LIMIT)
def list_bookings(
    request: Request,
    actor: Actor = Depends(get_actor),
    store: BookingStore = Depends(get_booking_store),
) -> List[RoomBooking]:
    return bookings.list_bookings(store, actor)


@app.get("/bookings/{booking_id}", response_model=BookingRead)
@limiter.limit(READ_LIMIT)
def get_booking(
    request: Request,
    booking_id: str,
    actor: Actor = Depends(get_actor),
    store: BookingStore = Depends(get_booking_store),
) -> RoomBooking:
    return bookings.get_booking(store, actor, booking_id)


@app.put("/bookings/{booking_id}", response_model=BookingRead)
@limiter.limit(WRITE_LIMIT)
def edit_booking(
    request: Request,
    booking_id: str,
    booking_in: BookingForm,
    actor: Actor = Depends(get_actor),
    store: BookingStore = Depends(get_booking_store),
) -> RoomBooking:
    return bookings.edit_booking(store, actor, booking_id, booking_in)


@app.patch("/bookings/{booking_id}/status", response_model=BookingRead)
@limiter.limit(WRITE_LIMIT)
def update_booking_status(
    request: Request,
    booking_id: str,
    status_in: BookingStatusUpdate,
    actor: Actor = Depends(get_actor),
    store: BookingStore = Depends(get_booking_store),
) -> RoomBooking:
    """Set any status on a booking. Administrators only."""
    return bookings.update_booking_status(store, actor, booking_id, status_in.status)


@app.delete("/bookings/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(WRITE_LIMIT)
def delete_booking(
    request: Request,
    booking_id: str,
    actor: Actor = Depends(get_actor),
    store: BookingStore = Depends(get_booking_store),
) -> None:
    bookings.delete_booking(store, actor, booking_id)
