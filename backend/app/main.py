import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.app.api.deps import require_user_header
from backend.app.api.v1.router import api_router
from backend.app.config import get_settings
from backend.app.database import create_tables
from backend.app.errors import register_exception_handlers

logger = logging.getLogger(__name__)
settings = get_settings()

def configure_logging():
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    create_tables()
    app.state.started_at = time.monotonic()
    logger.info("Starting up application...")
    yield
    logger.info("Shutting down application...")

app = FastAPI(
    title="Daily Allowance API",
    description="Budget periods, daily allowances and a spending ledger",
    version=settings.app_version,
    lifespan=lifespan,
)

API_PREFIX = "/api/v1"

# Added before CORS so CORS stays the outer layer
app.middleware("http")(require_user_header(API_PREFIX))

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include all API routes
app.include_router(api_router, prefix=API_PREFIX)

@app.get("/")
async def root():
    return {
        "message": "Daily Allowance API Server",
        "status": "running",
        "version": settings.app_version,
        "timestamp": datetime.utcnow().isoformat(),
    }

@app.get("/api/health")
async def health():
    started_at = getattr(app.state, "started_at", None)
    return {
        "status": "healthy",
        "uptime": time.monotonic() - started_at if started_at is not None else 0.0,
        "timestamp": datetime.utcnow().isoformat(),
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("backend.app.main:app", host="0.0.0.0", port=8000, reload=True)
