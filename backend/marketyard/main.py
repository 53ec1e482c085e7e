import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from marketyard.config import get_settings
from marketyard.database import init_db
from marketyard.exceptions import MarketYardError, ReferentialIntegrityError, ImportFormatError
from marketyard.routers.accounts import router as accounts_router
from marketyard.routers.catalog import router as catalog_router
from marketyard.routers.favorites import router as favorites_router
from marketyard.routers.insights import router as insights_router
from marketyard.routers.migration import router as migration_router
from marketyard.routers.notifications import router as notifications_router
from marketyard.routers.prices import router as prices_router

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables on startup."""
    logger.info(f"Starting up ({settings.environment})... Initializing database")
    init_db()
    yield
    logger.info("Shutting down...")


app = FastAPI(
    title="Market Yard API",
    description="Compare fruit, vegetable and farm-supply prices across local shops",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(MarketYardError)
async def market_yard_exception_handler(request: Request, exc: MarketYardError):
    """Translate core errors into JSON responses."""
    if isinstance(exc, (ReferentialIntegrityError, ImportFormatError)):
        # Corrupt data or a bug, not bad user input
        logger.error(f"{exc.__class__.__name__} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.__class__.__name__} on {request.method} {request.url.path}: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.__class__.__name__,
            "message": exc.message,
            "details": exc.details,
        }
    )


# Include routers
app.include_router(prices_router, prefix=settings.api_prefix)
app.include_router(insights_router, prefix=settings.api_prefix)
app.include_router(catalog_router, prefix=settings.api_prefix)
app.include_router(accounts_router, prefix=settings.api_prefix)
app.include_router(favorites_router, prefix=settings.api_prefix)
app.include_router(notifications_router, prefix=settings.api_prefix)
app.include_router(migration_router, prefix=settings.api_prefix)


@app.get("/")
def root():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": "Market Yard API",
        "version": "1.0.0"
    }
