import time
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from routers import auth, users

# Registers every model on Base.metadata
import models

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from middleware.rate_limiter import limiter

from core.logging_config import setup_logging, get_logger
from core.config import settings
from core.database import Base, engine
from core.exceptions import AuthError, ConfigurationError
from middleware import RequestIDMiddleware, get_request_id
from utils.deps import get_signing_service

setup_logging(
    log_level=settings.LOG_LEVEL,
    log_dir=settings.LOG_DIR
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        get_signing_service()
    except ConfigurationError:
        logger.critical("SECRET_KEY is not set, refusing to start", extra={"event": "startup"})
        raise

    Base.metadata.create_all(bind=engine)
    logger.info("Application startup complete", extra={"event": "startup"})
    yield
    logger.info("Application shutting down", extra={"event": "shutdown"})


app = FastAPI(
    title="Social API",
    description="Users, authentication and token lifecycle for the social backend",
    version="1.0.0",
    lifespan=lifespan
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Log every HTTP request with method, path, status code and duration.
    """
    start_time = time.time()

    response = await call_next(request)

    duration = (time.time() - start_time) * 1000
    client_ip = request.client.host if request.client else "unknown"

    logger.info(
        f'{client_ip} - "{request.method} {request.url.path}" {response.status_code}',
        extra={
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(duration, 2),
            "client_ip": client_ip
        }
    )

    return response


# Added last so it wraps the logging middleware and the id is set for its records
app.add_middleware(RequestIDMiddleware)


@app.get("/health")
async def health_check():
    logger.debug("Health check requested")
    return {"status": "Healthy"}


@app.exception_handler(AuthError)
async def auth_exception_handler(request: Request, exc: AuthError):
    """
    Map auth-core errors to JSON responses.
    """
    if isinstance(exc, ConfigurationError):
        logger.error(
            f"Configuration error: {exc.detail}",
            extra={"path": request.url.path, "request_id": get_request_id(request)}
        )

    headers = None
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=headers
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Catch all unhandled exceptions, log them with the stack trace and
    return a generic 500 without exposing internals.
    """
    if isinstance(exc, (HTTPException, RequestValidationError)):
        raise exc

    logger.error(
        f"Unhandled exception: {str(exc)}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_type": type(exc).__name__,
            "request_id": get_request_id(request)
        },
        exc_info=True
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"}
    )


app.include_router(auth.router)
app.include_router(users.router)


app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
