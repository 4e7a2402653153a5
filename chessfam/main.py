import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from chessfam.api.endpoints import notifications as notification_endpoints
from chessfam.api.endpoints import series as series_endpoints
from chessfam.api.endpoints import tournaments as tournament_endpoints
from chessfam.core.database import init_db
from chessfam.core.errors import ChessFamError
from chessfam.core.logging_config import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    init_db()
    logger.info("ChessFam API started")
    yield


app = FastAPI(title="ChessFam Tournament API", lifespan=lifespan)


@app.exception_handler(ChessFamError)
async def chessfam_error_handler(request: Request, exc: ChessFamError):
    content = {"detail": exc.message}
    if exc.reason is not None:
        content["reason"] = exc.reason.value
    if exc.status_code >= 500:
        logger.error("Unhandled %s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=content)


# Include routers
# Series first: "/tournaments/series" must not reach the "/{tournament_id}" route
app.include_router(series_endpoints.router, prefix="/tournaments", tags=["Series"])
app.include_router(tournament_endpoints.router, prefix="/tournaments", tags=["Tournaments"])
app.include_router(notification_endpoints.router, prefix="/notifications", tags=["Notifications"])


@app.get("/")
async def root():
    return {"message": "ChessFam Tournament API"}
