# Pocket Coach backend entrypoint: coaching-center registry with a live student ledger.

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.app.api import batches
from backend.app.api import branches
from backend.app.api import categories
from backend.app.api import login
from backend.app.api import payments
from backend.app.api import students
from backend.app.api import users
from backend.app.core.dev_seed import seed_default_super_admin
from backend.app.core.exceptions import (
    AppException,
    app_exception_handler,
    generic_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from backend.app.core.observability import RequestLoggingMiddleware, configure_logging
from backend.app.core.settings import get_settings
from backend.app.db.base import Base
from backend.app.db.session import SessionLocal, engine

settings = get_settings()
configure_logging(settings.log_level)

app = FastAPI(title=settings.app_name, version=settings.api_version)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

app.include_router(login.router)
app.include_router(users.router)
app.include_router(categories.router)
app.include_router(branches.router)
app.include_router(batches.router)
app.include_router(students.router)
app.include_router(payments.router)


@app.get("/")
def read_root():
    return {"app": "Pocket Coach API", "status": "ok"}


@app.get("/healthz")
def health_check():
    return {"status": "ok"}


@app.on_event("startup")
def prepare_database():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_default_super_admin(db)
    finally:
        db.close()
