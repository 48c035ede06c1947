from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
import random
import uuid

from happyhour.core.config import settings
from happyhour.logging import configure_logging
from happyhour.api.routes import router as api_router
from happyhour.middleware.logging import LoggingMiddleware
from happyhour.services.geocoding import build_reverse_geocoder
from happyhour.services.places_service import build_places_service
from happyhour.services.region_catalog import RegionCatalog

configure_logging()
logger = logging.getLogger(__name__)

# --- Application Lifecycle Management ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Application startup: v{settings.VERSION}")

    # Region and fallback tables are read-only after this point
    app.state.region_catalog = RegionCatalog.from_file()
    app.state.places_service = build_places_service(app.state.region_catalog, rng=random.Random())
    app.state.geocoder = build_reverse_geocoder()

    if not settings.use_google_places:
        logger.info("GOOGLE_PLACES_API_KEY not set; serving synthetic venues.")

    yield

    logger.info("Application shutdown.")

# --- FastAPI Application Initialization ---
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description=settings.BRIEF_DESCRIPTION,
    lifespan=lifespan,
)

app.add_middleware(LoggingMiddleware)

# --- API Routes ---
app.include_router(api_router, prefix="/api")

# --- Health Check Endpoint ---
@app.get("/health", status_code=status.HTTP_200_OK)
async def health_check(request: Request):
    return {
        "status": "ok",
        "version": settings.VERSION,
        "places_source": request.app.state.places_service.source.name,
    }

# --- Global Exception Handler (for unhandled errors) ---
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    error_id = str(uuid.uuid4())
    logger.error(f"Unhandled exception (ID: {error_id}): {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": {
                "error": "INTERNAL_SERVER_ERROR",
                "detail": "An unexpected error occurred. Please report this error ID.",
                "error_id": error_id
            }
        }
    )
