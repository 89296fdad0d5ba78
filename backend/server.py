"""
GearGuard - Maintenance Management Backend
PostgreSQL Backend
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv
from pathlib import Path
import logging

# Load environment variables
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

from app.config import app_settings  # noqa: E402

# ==================== Logging Configuration ====================
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Create the main app
app = FastAPI(
    title="GearGuard",
    description="Maintenance Management System - PostgreSQL Backend",
    version="1.0.0"
)


# Health check endpoint at root level (for Kubernetes)
@app.get("/health")
async def root_health_check():
    """Health check endpoint for Kubernetes liveness/readiness probes"""
    return {"status": "healthy", "database": "PostgreSQL"}


@app.exception_handler(HTTPException)
async def http_error_body(request: Request, exc: HTTPException):
    """Errors are returned as {"error": message}"""
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_error_body(request: Request, exc: RequestValidationError):
    """Malformed bodies and query strings are 400s with the first problem named"""
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query"))
        message = f"{field}: {first.get('msg')}" if field else first.get("msg", message)
    return JSONResponse(status_code=400, content={"error": message})


# ==================== Routes ====================
from routes.auth_routes import auth_router  # noqa: E402
from routes.requests_routes import requests_router  # noqa: E402
from routes.equipment_routes import equipment_router  # noqa: E402
from routes.directory_routes import directory_router  # noqa: E402

app.include_router(auth_router)
app.include_router(requests_router)
app.include_router(equipment_router)
app.include_router(directory_router)

# ==================== CORS Configuration ====================
app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=app_settings.cors_origin_list,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ==================== Startup & Shutdown Events ====================
@app.on_event("startup")
async def startup_db_client():
    """Initialize PostgreSQL database on startup"""
    logger.info("Starting GearGuard...")

    from database import init_postgres_db
    await init_postgres_db()

    logger.info(
        "Database ready (forward-only stage transitions: %s)",
        app_settings.enforce_forward_transitions,
    )


@app.on_event("shutdown")
async def shutdown_db_client():
    """Close database connections on shutdown"""
    logger.info("Shutting down...")

    from database import close_postgres_db
    await close_postgres_db()

    logger.info("Database connections closed")
