from contextlib import asynccontextmanager
from typing import List

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from schoolhub import auth
from schoolhub.config import get_settings
from schoolhub.database import Base, engine, get_db
from schoolhub.dependencies import get_current_user, require_admin
from schoolhub.errors import install_error_handlers
from schoolhub.logging_middleware import add_audit_middleware, configure_app_logging
from schoolhub.models import RoleEnum, Teacher, User
from schoolhub.rate_limit import LOGIN_LIMIT, READ_LIMIT, WRITE_LIMIT, apply_rate_limiter, limiter
from schoolhub.schemas import TeacherCreate, TeacherRead, Token, UserCreate, UserRead

settings = get_settings()


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.run_db_migrations:
        Base.metadata.create_all(bind=engine)
    yield


def create_app() -> FastAPI:
    fastapi_app = FastAPI(title="Users Service", version="1.0.0", lifespan=lifespan)
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    apply_rate_limiter(fastapi_app)
    add_audit_middleware(fastapi_app, "users")
    install_error_handlers(fastapi_app, "users")
    configure_app_logging()
    return fastapi_app


app = create_app()


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok", "service": "users"}


@app.post("/users/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
@limiter.limit(LOGIN_LIMIT)
def register_user(request: Request, user_in: UserCreate, db: Session = Depends(get_db)) -> User:
    if db.query(User).filter((User.username == user_in.username) | (User.email == user_in.email)).first():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username or email already exists")

    # Only the very first account may promote itself to admin.
    admins_exist = db.query(User).filter(User.role == RoleEnum.ADMIN).first() is not None
    if user_in.role == RoleEnum.ADMIN and admins_exist:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only admins can assign elevated roles")

    user = User(
        name=user_in.name,
        username=user_in.username,
        email=user_in.email,
        role=user_in.role,
        hashed_password=auth.hash_password(user_in.password),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@app.post("/users/login", response_model=Token)
@limiter.limit(LOGIN_LIMIT)
def login(request: Request, form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)) -> Token:
    user = auth.authenticate_user(db, form_data.username, form_data.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect username or password")

    return Token(access_token=auth.create_access_token(user))


@app.get("/users/me", response_model=UserRead)
@limiter.limit(READ_LIMIT)
def read_me(request: Request, current_user: User = Depends(get_current_user)) -> User:
    return current_user


@app.get("/users", response_model=List[UserRead])
@limiter.limit(READ_LIMIT)
def list_users(request: Request, _: User = Depends(require_admin), db: Session = Depends(get_db)) -> List[User]:
    return db.query(User).order_by(User.created_at).all()


@app.post("/teachers", response_model=TeacherRead, status_code=status.HTTP_201_CREATED)
@limiter.limit(WRITE_LIMIT)
def create_teacher(
    request: Request,
    teacher_in: TeacherCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> Teacher:
    if teacher_in.auth_id and db.get(User, teacher_in.auth_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Linked user account not found")
    teacher = Teacher(**teacher_in.model_dump(), created_by=current_user.id)
    db.add(teacher)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="That account is already linked to a teacher"
        )
    db.refresh(teacher)
    return teacher


@app.get("/teachers", response_model=List[TeacherRead])
@limiter.limit(READ_LIMIT)
def list_teachers(
    request: Request,
    _: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> List[Teacher]:
    return db.query(Teacher).order_by(Teacher.name).all()
