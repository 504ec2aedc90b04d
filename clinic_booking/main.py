import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

# Import models so every table is registered on Base before create_all
from . import models  # noqa: F401
from .config import ALLOWED_ORIGINS, LOG_LEVEL, SECURITY_HEADERS_ENABLED
from .database import Base, engine
from .domain.appointments.router import availability_router
from .domain.appointments.router import router as appointments_router
from .domain.holds.router import router as holds_router
from .domain.schedules.router import router as schedules_router
from .security_headers import SecurityHeadersMiddleware
from .shared.errors import BookingError
from .shared.validators import errors_from_pydantic

# Configure logging
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except SQLAlchemyError as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")
            raise

    yield
    logger.info("Application shutting down...")


app = FastAPI(title="Clinic Booking API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(BookingError)
async def booking_exception_handler(request: Request, exc: BookingError):
    logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Reshape FastAPI validation errors into a field -> message mapping"""
    errors = errors_from_pydantic(exc.errors())
    logger.warning(f"Validation error for {request.url.path}: {errors}")
    return JSONResponse(
        status_code=422,
        content={"detail": "Validation failed", "errors": errors},
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    # Context (operation, doctor, date, time) was logged where the error was raised
    logger.error(f"{request.method} {request.url.path} - Database error: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


if SECURITY_HEADERS_ENABLED:
    app.add_middleware(
        SecurityHeadersMiddleware, exclude_paths=["/health", "/docs", "/openapi.json"]
    )
    logger.info("Security headers enabled")
else:
    logger.warning("Security headers DISABLED - only use in development!")

logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Routes
app.include_router(schedules_router)
app.include_router(appointments_router)
app.include_router(availability_router)
app.include_router(holds_router)


@app.get("/")
def root():
    return {"message": "Clinic Booking API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}
