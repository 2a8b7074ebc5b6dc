import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cutout.config import get_settings
from cutout.database import AsyncSessionLocal, init_db
from cutout.routes import health_router, upload_router
from cutout.worker import upload_manager

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )
    logger.info("Starting Cutout Service")

    await init_db()
    await upload_manager.start(settings, AsyncSessionLocal)

    yield

    logger.info("Shutting down Cutout Service")
    await upload_manager.stop()


app = FastAPI(
    title="Cutout Service",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(upload_router)
app.include_router(health_router)


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})
