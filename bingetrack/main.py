from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import logging

from bingetrack.database import init_db
from bingetrack.errors import (
    CatalogUnavailable, ConfirmationRequired, InvalidWatchEntry, NotFound, StoreWriteFailure
)
from bingetrack.routers import watchlist_router, episodes_router, settings_router
from bingetrack.config import load_settings_from_db, settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    await init_db()
    await load_settings_from_db()
    logger.info(
        f"Bingetrack started (stale after {settings.stale_after_days} days, "
        f"lenient timestamps: {settings.lenient_timestamps})"
    )
    yield


app = FastAPI(title="Bingetrack", lifespan=lifespan)

# Include routers
app.include_router(watchlist_router, prefix="/api", tags=["watchlist"])
app.include_router(episodes_router, prefix="/api", tags=["episodes"])
app.include_router(settings_router, prefix="/api", tags=["settings"])


def _error(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse({"detail": str(exc), "error": type(exc).__name__}, status_code=status_code)


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return _error(404, exc)


@app.exception_handler(InvalidWatchEntry)
async def invalid_entry_handler(request: Request, exc: InvalidWatchEntry):
    return _error(422, exc)


@app.exception_handler(ConfirmationRequired)
async def confirmation_handler(request: Request, exc: ConfirmationRequired):
    return _error(409, exc)


@app.exception_handler(StoreWriteFailure)
async def store_failure_handler(request: Request, exc: StoreWriteFailure):
    return _error(503, exc)


@app.exception_handler(CatalogUnavailable)
async def catalog_unavailable_handler(request: Request, exc: CatalogUnavailable):
    logger.error(f"Catalog unavailable for {request.url.path}: {exc}")
    return _error(502, exc)
