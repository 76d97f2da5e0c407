import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from frontdesk.config import settings
from frontdesk.dependencies import require_staff
from frontdesk.exception_handlers import register_exception_handlers
from frontdesk.logging_config import configure_logging
from frontdesk.routers import appointments, dashboard, doctors, patients, queue

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging once; Firestore connects lazily on first use."""
    configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
    logger.info(
        "Front desk API starting (environment=%s, open_access=%s)",
        settings.ENVIRONMENT, not settings.API_KEY,
    )
    yield
    logger.info("Front desk API stopped")


app = FastAPI(title="Clinic Front Desk API", lifespan=lifespan)

# CORS Middleware Setup
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

for module in (patients, doctors, queue, appointments, dashboard):
    app.include_router(module.router, dependencies=[Depends(require_staff)])


@app.get("/health")
async def health():
    return {"status": "ok", "environment": settings.ENVIRONMENT}
