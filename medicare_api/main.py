from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
import time
import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .api.v1.admin import router as admin_router
from .api.v1.appointments import router as appointments_router
from .api.v1.auth import router as auth_router
from .api.v1.chambers import router as chambers_router
from .api.v1.doctors import router as doctors_router
from .api.v1.patients import router as patients_router
from .core.config import settings
from .core.database import engine, get_db, init_db

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    description="Doctor directory with verification, chambers and appointment booking",
    openapi_url="/api/v1/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Middleware setup
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Only add TrustedHostMiddleware in production, not in testing
if not settings.TESTING:
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=["localhost", "127.0.0.1", "*.localhost", "testserver"]
    )


# Custom middleware for request logging and timing
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)

    logger.info(
        "%s %s - Status: %s - Time: %.4fs",
        request.method, request.url.path, response.status_code, process_time
    )

    return response


# Exception handlers
@app.exception_handler(404)
async def not_found_handler(request: Request, exc: HTTPException):
    detail = getattr(exc, "detail", None)
    return JSONResponse(
        status_code=404,
        content={
            "error": "Not Found",
            "detail": detail if detail and detail != "Not Found" else "The requested resource was not found",
            "path": str(request.url.path)
        }
    )


@app.exception_handler(500)
async def internal_error_handler(request: Request, exc: Exception):
    logger.error("Internal server error on %s: %s", request.url.path, exc, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "message": "An unexpected error occurred"
        }
    )


# Include routers; the /doctors/me/* routes must be registered before /doctors/{doctor_id}/*
app.include_router(auth_router, prefix="/api/v1")
app.include_router(appointments_router, prefix="/api/v1")
app.include_router(chambers_router, prefix="/api/v1")
app.include_router(patients_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")
app.include_router(doctors_router, prefix="/api/v1")


# Startup and shutdown events
@app.on_event("startup")
async def startup_event():
    """Create tables and report the active scheduling policy."""
    logger.info("Starting %s...", settings.APP_NAME)

    db_url = settings.get_database_url
    db_type = "PostgreSQL" if "postgresql" in db_url else "SQLite" if "sqlite" in db_url else "Unknown"
    logger.info("Using %s database", db_type)

    try:
        init_db()
        logger.info("Database initialized successfully")
    except SQLAlchemyError as e:
        logger.error("Failed to initialize database: %s", e)
        raise

    logger.info(
        "Slot conflict enforcement: %s; notification emails: %s",
        "on" if settings.ENFORCE_SLOT_CONFLICTS else "off",
        "live" if settings.EMAIL_API_KEY else "simulated",
    )


@app.on_event("shutdown")
async def shutdown_event():
    """Release pooled database connections."""
    logger.info("Shutting down %s...", settings.APP_NAME)
    engine.dispose()


# Health check endpoint
@app.get("/health")
async def health_check(db: Session = Depends(get_db)):
    """Liveness plus a round trip to the data store."""
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning("Health check could not reach the database: %s", e)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "database": "unreachable", "version": settings.VERSION}
        )

    return {
        "status": "healthy",
        "database": "ok",
        "timestamp": time.time(),
        "version": settings.VERSION
    }


# Root endpoint
@app.get("/")
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.VERSION,
        "docs": "/docs",
        "health": "/health",
        "api": "/api/v1/info"
    }


@app.get("/api/v1/info")
async def api_info():
    """Entry points of each resource group."""
    return {
        "name": settings.APP_NAME,
        "version": settings.VERSION,
        "slot_conflicts_enforced": settings.ENFORCE_SLOT_CONFLICTS,
        "endpoints": {
            "authentication": "/api/v1/auth",
            "doctors": "/api/v1/doctors",
            "chambers": "/api/v1/chambers",
            "appointments": "/api/v1/appointments",
            "patients": "/api/v1/patients",
            "admin": "/api/v1/admin",
        }
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "medicare_api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
