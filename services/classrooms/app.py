from contextlib import asynccontextmanager
from typing import List

from circuitbreaker import circuit
from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from schoolhub.cache import SimpleTTLCache
from schoolhub.config import get_settings
from schoolhub.database import Base, engine, get_db
from schoolhub.dependencies import get_current_user, require_admin
from schoolhub.errors import install_error_handlers
from schoolhub.logging_middleware import add_audit_middleware, configure_app_logging
from schoolhub.models import Classroom, User
from schoolhub.rate_limit import READ_LIMIT, WRITE_LIMIT, apply_rate_limiter, limiter
from schoolhub.schemas import ClassroomCreate, ClassroomRead, ClassroomUpdate

settings = get_settings()
classroom_list_cache: SimpleTTLCache[list[ClassroomRead]] = SimpleTTLCache(ttl=settings.classroom_cache_ttl)
_LIST_PREFIX = "classroom-list:"


def _invalidate_classroom_cache() -> None:
    classroom_list_cache.invalidate_prefix(_LIST_PREFIX)


def _duplicate_room(room_number: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=f"Room number {room_number} already exists. Please use a different room number.",
    )


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.run_db_migrations:
        Base.metadata.create_all(bind=engine)
    yield


def create_app() -> FastAPI:
    fastapi_app = FastAPI(title="Classrooms Service", version="1.0.0", lifespan=lifespan)
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    apply_rate_limiter(fastapi_app)
    add_audit_middleware(fastapi_app, "classrooms")
    install_error_handlers(fastapi_app, "classrooms")
    configure_app_logging()
    return fastapi_app


app = create_app()


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok", "service": "classrooms"}


@app.post("/classrooms", response_model=ClassroomRead, status_code=status.HTTP_201_CREATED)
@limiter.limit(WRITE_LIMIT)
def add_classroom(
    request: Request,
    classroom_in: ClassroomCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> Classroom:
    classroom = Classroom(**classroom_in.model_dump(), created_by=current_user.id)
    db.add(classroom)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise _duplicate_room(classroom_in.room_number)
    db.refresh(classroom)
    _invalidate_classroom_cache()
    return classroom


@app.get("/classrooms", response_model=List[ClassroomRead])
@circuit(failure_threshold=5, recovery_timeout=60)
def list_classrooms(
    request: Request,
    available_only: bool = False,
    _: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[ClassroomRead]:
    def load() -> list[ClassroomRead]:
        query = db.query(Classroom)
        if available_only:
            query = query.filter(Classroom.is_available.is_(True))
        return [ClassroomRead.model_validate(room) for room in query.order_by(Classroom.room_number).all()]

    return classroom_list_cache.get_or_load(f"{_LIST_PREFIX}{available_only}", load)


@app.get("/classrooms/{classroom_id}", response_model=ClassroomRead)
@limiter.limit(READ_LIMIT)
def get_classroom(
    request: Request,
    classroom_id: str,
    _: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Classroom:
    classroom = db.get(Classroom, classroom_id)
    if not classroom:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Classroom not found")
    return classroom


@app.put("/classrooms/{classroom_id}", response_model=ClassroomRead)
@limiter.limit(WRITE_LIMIT)
def update_classroom(
    request: Request,
    classroom_id: str,
    classroom_update: ClassroomUpdate,
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> Classroom:
    classroom = db.get(Classroom, classroom_id)
    if not classroom:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Classroom not found")

    for key, value in classroom_update.model_dump(exclude_unset=True).items():
        setattr(classroom, key, value)
    db.commit()
    db.refresh(classroom)
    _invalidate_classroom_cache()
    return classroom


@app.delete("/classrooms/{classroom_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit(WRITE_LIMIT)
def delete_classroom(
    request: Request,
    classroom_id: str,
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> None:
    classroom = db.get(Classroom, classroom_id)
    if not classroom:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Classroom not found")
    db.delete(classroom)
    db.commit()
    _invalidate_classroom_cache()
