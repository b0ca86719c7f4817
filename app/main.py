from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.exc import DisconnectionError, OperationalError
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException

from app.audit.service import record_rejected_request
from app.config import settings
from app.database import Base, SessionLocal, engine
from app.errors import AppError
from app.security.sessions import clear_session_cookie

from app.audit import models as audit_models  # noqa: F401
from app.categories import models as category_models  # noqa: F401
from app.expenses import models as expense_models  # noqa: F401
from app.users import models as user_models  # noqa: F401

from app.audit.router import router as audit_router
from app.categories.router import router as category_router
from app.categories.service import sync_predefined_categories
from app.expenses.router import router as expense_router
from app.users.routers import router as auth_router
from app.users.routers import users_router


if settings.LOG_FILE:
    logger.add(settings.LOG_FILE, rotation=settings.LOG_ROTATION, level=settings.LOG_LEVEL)

logger.info(f"Running on SERVER_IP: {settings.SERVER_IP}")


# Database startup
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application startup")
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        sync_predefined_categories(db)
    finally:
        db.close()

    yield
    logger.info("Application shutdown")


# Create app
app = FastAPI(
    title="FAMILY EXPENSE TRACKER",
    description="An API for tracking household expenses by category, with statistics and CSV export.",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =========================
# Error envelope
# =========================
def _error_response(status_code: int, error: str, code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error, "code": code},
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    code = exc.code if isinstance(exc, AppError) else "HTTP_ERROR"
    response = _error_response(exc.status_code, str(exc.detail), code)

    # drop a stale or tampered session cookie so the client stops sending it
    if exc.status_code == status.HTTP_401_UNAUTHORIZED and settings.SESSION_COOKIE_NAME in request.cookies:
        clear_session_cookie(response)
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Validation failed"
    if errors:
        first = errors[0]
        message = str(first.get("msg", message)).removeprefix("Value error, ")
        field = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
        if field:
            message = f"{'.'.join(field)}: {message}"

    await run_in_threadpool(record_rejected_request, request)
    return _error_response(status.HTTP_400_BAD_REQUEST, message, "VALIDATION_ERROR")


@app.exception_handler(OperationalError)
@app.exception_handler(DisconnectionError)
async def database_unavailable_handler(request: Request, exc: Exception):
    logger.error(f"Database unavailable during {request.method} {request.url.path}: {exc}")
    return _error_response(status.HTTP_503_SERVICE_UNAVAILABLE, "Database unavailable", "UNAVAILABLE")


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error during {request.method} {request.url.path}")
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", "INTERNAL_ERROR")


# Routers
app.include_router(auth_router, prefix="/auth", tags=["Auth"])
app.include_router(users_router, prefix="/users", tags=["Users"])
app.include_router(category_router, prefix="/categories", tags=["Categories"])
app.include_router(expense_router, prefix="/expenses", tags=["Expenses"])
app.include_router(audit_router, prefix="/audit", tags=["Audit"])


@app.get("/health")
def health_check():
    return {"status": "ok"}


if __name__ == "__main__":
    uvicorn.run("app.main:app", host=settings.SERVER_IP, port=settings.SERVER_PORT)
