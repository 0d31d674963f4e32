"""Event Sharing Service web application."""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from eventshare import __version__
from eventshare.core.config import settings
from eventshare.core.database import create_db_and_tables
from eventshare.core.errors import VisibilityError
from eventshare.routes import events, groups, projections, shares

# Configure logging
log_dir = Path(settings.log_dir).expanduser()
log_dir.mkdir(parents=True, exist_ok=True)
log_file = log_dir / "latest.log"

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    filename=str(log_file),
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown lifecycle."""
    logger.info("Starting Event Sharing Service")
    create_db_and_tables()
    yield
    logger.info("Event Sharing Service shut down")


app = FastAPI(
    title=settings.app_name,
    description="Decides which calendar events each user may see, and in how much detail",
    version=__version__,
    lifespan=lifespan,
)

# Configure CORS for external access
origins = (
    ["*"]
    if settings.allowed_origins == "*"
    else [o.strip() for o in settings.allowed_origins.split(",")]
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(VisibilityError)
async def visibility_error_handler(request: Request, exc: VisibilityError):
    """Translate engine errors into JSON responses with their HTTP status."""
    logger.info(f"{request.method} {request.url.path} rejected: {type(exc).__name__}: {exc.detail}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


# Include routers
app.include_router(events.router)
app.include_router(shares.router)
app.include_router(projections.router)
app.include_router(groups.router)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "app": settings.app_name}
