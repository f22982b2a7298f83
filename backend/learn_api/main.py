"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the Learn server. Controllers
are intentionally thin: they accept requests, delegate to services, and
return JSON responses. Service errors are rendered as
`{"error": "<message>"}` by a single exception handler.

Endpoints implemented:
- GET /tutorials
- GET /lessons, GET /lessons/{id}, POST /lessons, PATCH /lessons/{id}, DELETE /lessons/{id}
- PATCH /lessons/{lesson_number}/vocabulary
- PATCH /lessons/{id}/vocabulary/{pronunciation}
- DELETE /lessons/{id}/vocabulary/{pronunciation}
- GET /users, PATCH /users/{id}, DELETE /users/{id}
- POST /registration
- POST /login
"""

import json
import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Path, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from . import schemas, services
from .config import Settings
from .database import Database, get_session
from .errors import ServiceError

logger = logging.getLogger("learn_api.api")

router = APIRouter()


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _lesson_out(lesson) -> schemas.LessonOut:
    return schemas.LessonOut.model_validate(lesson)


def _user_out(user) -> schemas.UserOut:
    return schemas.UserOut.model_validate(user)


@router.get("/", response_class=PlainTextResponse)
def home():
    return "Learn server is running"


@router.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}


@router.get("/tutorials", response_model=List[schemas.TutorialOut])
def list_tutorials(db: Session = Depends(get_session)):
    """List every tutorial link."""
    return [schemas.TutorialOut.model_validate(t) for t in services.TutorialService(db).list_tutorials()]


@router.get("/lessons", response_model=List[schemas.LessonOut])
def list_lessons(db: Session = Depends(get_session)):
    return [_lesson_out(lesson) for lesson in services.LessonService(db).list_lessons()]


@router.get("/lessons/{lesson_id}", response_model=schemas.LessonOut)
def get_lesson(lesson_id: str, db: Session = Depends(get_session)):
    return _lesson_out(services.LessonService(db).get_lesson(lesson_id))


@router.post("/lessons", response_model=schemas.LessonOut, status_code=201)
def create_lesson(payload: schemas.LessonCreate, db: Session = Depends(get_session)):
    """Create a lesson with an empty vocabulary list.

    A lesson number that is already taken is refused with 400.
    """
    lesson = services.LessonService(db).create_lesson(payload.lesson_number, payload.title, payload.description)
    return _lesson_out(lesson)


@router.patch("/lessons/{lesson_id}", response_model=schemas.LessonOut)
def update_lesson(lesson_id: str, payload: schemas.LessonUpdate, db: Session = Depends(get_session)):
    """Replace the number and title of a lesson."""
    lesson = services.LessonService(db).update_lesson(lesson_id, payload.lesson_number, payload.title)
    return _lesson_out(lesson)


@router.delete("/lessons/{lesson_id}", response_model=schemas.MessageOut)
def delete_lesson(lesson_id: str, db: Session = Depends(get_session)):
    services.LessonService(db).delete_lesson(lesson_id)
    return schemas.MessageOut(message="Lesson deleted successfully")


@router.patch("/lessons/{lesson_number}/vocabulary", response_model=schemas.LessonOut)
def add_vocabulary(
    payload: schemas.VocabularyIn,
    lesson_number: int = Path(ge=schemas.LESSON_NUMBER_MIN, le=schemas.LESSON_NUMBER_MAX),
    db: Session = Depends(get_session),
):
    """Append a vocabulary entry to the lesson with `lesson_number`.

    Note the path addresses the lesson by its number, not its id.
    """
    lesson = services.LessonService(db).add_vocabulary(
        lesson_number,
        word=payload.word,
        pronunciation=payload.pronunciation,
        meaning=payload.meaning,
        date_added=payload.date_added,
        author_email=payload.author_email,
    )
    return _lesson_out(lesson)


@router.patch("/lessons/{lesson_id}/vocabulary/{pronunciation}", response_model=schemas.LessonOut)
def update_vocabulary(
    lesson_id: str,
    pronunciation: str,
    payload: schemas.VocabularyUpdate,
    db: Session = Depends(get_session),
):
    lesson = services.LessonService(db).update_vocabulary(
        lesson_id,
        pronunciation,
        word=payload.word,
        meaning=payload.meaning,
        date_added=payload.date_added,
        lesson_number=payload.lesson_number,
        author_email=payload.author_email,
    )
    return _lesson_out(lesson)


@router.delete("/lessons/{lesson_id}/vocabulary/{pronunciation}", response_model=schemas.LessonOut)
def delete_vocabulary(lesson_id: str, pronunciation: str, db: Session = Depends(get_session)):
    return _lesson_out(services.LessonService(db).delete_vocabulary(lesson_id, pronunciation))


@router.get("/users", response_model=List[schemas.UserOut])
def list_users(db: Session = Depends(get_session), settings: Settings = Depends(get_settings)):
    """List users. Credential hashes are projected away."""
    return [_user_out(u) for u in services.UserService(db, settings).list_users()]


@router.patch("/users/{user_id}", response_model=schemas.UserOut)
def set_user_role(
    user_id: str,
    payload: schemas.RoleUpdate,
    db: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    return _user_out(services.UserService(db, settings).set_role(user_id, payload.role))


@router.delete("/users/{user_id}", response_model=schemas.MessageOut)
def delete_user(user_id: str, db: Session = Depends(get_session), settings: Settings = Depends(get_settings)):
    services.UserService(db, settings).delete_user(user_id)
    return schemas.MessageOut(message="User deleted successfully")


@router.post("/registration", response_model=schemas.RegisterOut, status_code=201)
def register(payload: schemas.RegisterIn, db: Session = Depends(get_session), settings: Settings = Depends(get_settings)):
    """Register a new user with the default `user` role.

    An email that is already registered is refused with 400.
    """
    user = services.UserService(db, settings).register(
        payload.name, payload.email, payload.password, payload.profile_image
    )
    return schemas.RegisterOut(message="User registered successfully", user_id=user.id)


@router.post("/login", response_model=schemas.LoginOut)
def login(payload: schemas.LoginIn, db: Session = Depends(get_session), settings: Settings = Depends(get_settings)):
    """Authenticate a user and return a short-lived JWT token.

    The token carries `userId`, `user_id` and `email` and is signed with the
    configured secret. The user projection never includes the hash.
    """
    token, user = services.UserService(db, settings).authenticate(payload.email, payload.password)
    return schemas.LoginOut(message="Login successful", token=token, user=_user_out(user))


async def service_error_handler(request: Request, exc: ServiceError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def validation_error_handler(request: Request, exc: RequestValidationError):
    problems = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        problems.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "details": jsonable_encoder(problems)},
    )


async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("store error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


async def unexpected_error_handler(request: Request, exc: Exception):
    # the request middleware has already logged the traceback
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def _request_summary(request: Request, req_id: str, started: float, **extra) -> str:
    fields = {
        "request_id": req_id,
        "path": request.url.path,
        "method": request.method,
        **extra,
        "duration_ms": round((time.perf_counter() - started) * 1000.0, 2),
    }
    return json.dumps(fields, ensure_ascii=True)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application bound to `settings` (read from the environment by default).

    The store is opened when the application starts and closed when it
    shuts down.
    """
    settings = settings or Settings()
    if not logging.getLogger().handlers:
        logging.basicConfig(level=settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database = Database(settings.DATABASE_URL)
        app.state.database = database.open()
        try:
            yield
        finally:
            database.close()

    app = FastAPI(title="Learn Server API", lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def tag_and_time_request(request: Request, call_next):
        req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
        request.state.request_id = req_id
        started = time.perf_counter()
        try:
            response: Response = await call_next(request)
        except Exception:
            logger.exception("request_failed %s", _request_summary(request, req_id, started))
            raise
        response.headers["X-Request-ID"] = req_id
        logger.info("request_done %s", _request_summary(request, req_id, started, status_code=response.status_code))
        return response

    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(SQLAlchemyError, store_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
    app.include_router(router)
    return app


app = create_app()
