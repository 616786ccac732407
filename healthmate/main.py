import asyncio
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool
from contextlib import asynccontextmanager
from dotenv import load_dotenv
from datetime import datetime
import logging

# Load environment variables as early as possible
load_dotenv()

from .core.config import settings
from .database import create_db_and_tables
from .exceptions import http_exception_handler
from .middleware import LoggingMiddleware, ErrorHandlingMiddleware
from .routers import appointments_router, providers_router
from .scheduling.tasks import run_no_show_sweep

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format=settings.LOG_FORMAT
)
logger = logging.getLogger(__name__)


async def _no_show_sweep_loop(interval_seconds: float):
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await run_in_threadpool(run_no_show_sweep)
        except Exception:
            # Keep the loop alive; the next tick retries
            logger.exception("No-show sweep failed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"Starting {settings.APP_NAME}...")
    app.state.db_init_ok = True
    app.state.db_init_error = None
    try:
        create_db_and_tables()
        logger.info("Database initialized successfully")
    except Exception as e:
        # Do not crash the app; report via health endpoint
        app.state.db_init_ok = False
        app.state.db_init_error = str(e)
        logger.exception("Database initialization failed")

    sweep_task = None
    if settings.NO_SHOW_SWEEP_ENABLED and app.state.db_init_ok:
        interval = settings.NO_SHOW_SWEEP_INTERVAL_MINUTES * 60
        sweep_task = asyncio.create_task(_no_show_sweep_loop(interval))
        logger.info(f"No-show sweep scheduled every {settings.NO_SHOW_SWEEP_INTERVAL_MINUTES} minutes")
    yield
    # Shutdown
    if sweep_task:
        sweep_task.cancel()
        try:
            await sweep_task
        except asyncio.CancelledError:
            pass
    logger.info(f"Shutting down {settings.APP_NAME}...")

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    docs_url=("/docs" if settings.DOCS_ENABLED else None),
    redoc_url=("/redoc" if settings.DOCS_ENABLED else None),
    openapi_url=("/openapi.json" if settings.DOCS_ENABLED else None)
)

# Add custom exception handler
app.add_exception_handler(HTTPException, http_exception_handler)

# Add middleware
app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(LoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(providers_router.router)
app.include_router(appointments_router.router)

# Health check endpoint
@app.get("/health")
def health_check():
    return {
        "status": "healthy" if getattr(app.state, "db_init_ok", True) else "degraded",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.utcnow().isoformat(),
        "db_error": getattr(app.state, "db_init_error", None),
    }
