from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
import time
import logging

from .api.v1 import appointments, auth, doctors, patients, prescriptions
from .core.config import settings
from .core.database import engine, init_db
from .core.security import TOKEN_TTL

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
ROUTERS = (auth, doctors, appointments, patients, prescriptions)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    description="Doctor availability, appointment booking and prescriptions for a clinic",
    openapi_url=f"{API_PREFIX}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Authorization", "Content-Type"],
)

# Host checking breaks the test client, which sends arbitrary hosts
if not settings.TESTING:
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=["localhost", "127.0.0.1", "*.localhost"]
    )

@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - started
    response.headers["X-Process-Time"] = f"{elapsed:.4f}"

    log = logger.warning if response.status_code >= 500 else logger.info
    log(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed * 1000:.1f} ms)")
    return response

@app.exception_handler(404)
async def not_found_handler(request: Request, exc: HTTPException):
    """Missing routes and missing records share one body shape."""
    return JSONResponse(
        status_code=404,
        content={
            "error": "Not Found",
            "message": getattr(exc, "detail", None) or "The requested resource was not found",
            "path": request.url.path
        }
    )

@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Storage failure on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal Server Error", "message": "An unexpected error occurred"}
    )

@app.exception_handler(500)
async def internal_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal Server Error", "message": "An unexpected error occurred"}
    )

for module in ROUTERS:
    app.include_router(module.router, prefix=API_PREFIX)

@app.on_event("startup")
async def startup_event():
    logger.info(f"Starting {settings.APP_NAME} {settings.VERSION}")
    logger.info(f"Storage backend: {engine.url.get_backend_name()}")
    logger.info(
        f"Sessions last {TOKEN_TTL.days} days; "
        f"login budget {settings.LOGIN_RATE_LIMIT} per {settings.LOGIN_RATE_WINDOW_SECONDS}s"
    )

    try:
        init_db()
    except SQLAlchemyError as e:
        logger.error(f"Could not create tables: {e}")
        raise

@app.on_event("shutdown")
async def shutdown_event():
    engine.dispose()
    logger.info(f"{settings.APP_NAME} stopped")

@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "timestamp": time.time(),
        "version": settings.VERSION
    }

@app.get(f"{API_PREFIX}/info")
async def api_info():
    """Service name, version and the mounted route groups."""
    groups = {module.router.prefix.strip("/"): f"{API_PREFIX}{module.router.prefix}" for module in ROUTERS}
    return {
        "name": settings.APP_NAME,
        "version": settings.VERSION,
        "endpoints": {**groups, "docs": "/docs", "openapi": app.openapi_url}
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "clinic.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info"
    )
