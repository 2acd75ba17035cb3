from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import time
import logging

from .api.v1.auth import router as auth_router
from .api.v1.hospitals import router as hospitals_router
from .api.v1.appointments import router as appointments_router
from .api.v1.appointments import hospital_router as hospital_appointments_router
from .core.config import Settings, settings as default_settings
from .core.database import init_db
from .core.middleware import RateLimitMiddleware, SanitizeMiddleware, SecurityHeadersMiddleware
from .core.rate_limit import RateLimiter, build_rate_limiter

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the database on startup."""
    app_settings = app.state.settings
    logger.info(f"Starting {app_settings.APP_NAME} in {app_settings.ENVIRONMENT} mode")

    db_url = app_settings.get_database_url
    db_type = "PostgreSQL" if "postgresql" in db_url else "SQLite" if "sqlite" in db_url else "Unknown"
    logger.info(f"Using {db_type} database")

    try:
        init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {str(e)}")
        raise

    logger.info("Application startup complete")
    yield
    logger.info(f"Shutting down {app_settings.APP_NAME}...")

def _error_response(status_code: int, message, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message},
        headers=headers
    )

def register_exception_handlers(app: FastAPI):
    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return _error_response(exc.status_code, exc.detail, getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        messages = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
            messages.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
        return _error_response(400, "; ".join(messages) or "Invalid request data")

    @app.exception_handler(Exception)
    async def internal_error_handler(request: Request, exc: Exception):
        logger.error(f"Internal server error on {request.method} {request.url.path}: {str(exc)}")
        return _error_response(500, "Server Error")

def create_app(
    app_settings: Settings = None,
    rate_limiter: RateLimiter = None
) -> FastAPI:
    """Build the API with its middleware configured from ``app_settings``."""
    app_settings = app_settings or default_settings
    rate_limiter = rate_limiter or build_rate_limiter(app_settings)

    app = FastAPI(
        title=app_settings.APP_NAME,
        version=app_settings.VERSION,
        description="Hospital directory and vaccination appointment booking API",
        openapi_url=f"{API_PREFIX}/openapi.json",
        docs_url="/api-docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.settings = app_settings
    app.state.rate_limiter = rate_limiter

    # Custom middleware for request logging and timing
    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(process_time)

        logger.info(
            f"{request.method} {request.url.path} - "
            f"Status: {response.status_code} - "
            f"Time: {process_time:.4f}s"
        )

        return response

    # Added innermost first: each add wraps the previous stack
    app.add_middleware(SanitizeMiddleware)
    app.add_middleware(RateLimitMiddleware, limiter=rate_limiter, exempt_paths=["/health"])
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.ALLOWED_ORIGINS,
        allow_credentials="*" not in app_settings.ALLOWED_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)

    register_exception_handlers(app)

    # Include routers
    app.include_router(hospitals_router, prefix=API_PREFIX)
    app.include_router(hospital_appointments_router, prefix=API_PREFIX)
    app.include_router(auth_router, prefix=API_PREFIX)
    app.include_router(appointments_router, prefix=API_PREFIX)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "timestamp": time.time(),
            "version": app_settings.VERSION
        }

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "message": f"Welcome to {app_settings.APP_NAME}",
            "version": app_settings.VERSION,
            "docs": "/api-docs",
            "openapi": f"{API_PREFIX}/openapi.json",
            "endpoints": {
                "hospitals": f"{API_PREFIX}/hospitals",
                "authentication": f"{API_PREFIX}/auth",
                "appointments": f"{API_PREFIX}/appointments",
            },
            "health": "/health"
        }

    return app

app = create_app()

if __name__ == "__main__":
    from .server import run
    run()
