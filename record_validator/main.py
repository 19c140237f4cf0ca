import asyncio
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from record_validator.api.v1 import batches, corpus, documents, health, validations
from record_validator.core.config import get_settings
from record_validator.core.errors import BaseApplicationError
from record_validator.core.logging import LogEvent, configure_logging, get_logger
from record_validator.core.middleware import RequestContextMiddleware, error_handler
from record_validator.services.service_factory import ServiceFactory

settings = get_settings()
configure_logging(settings.log_level, settings.json_logs, settings.log_file)
logger = get_logger(__name__)


async def maintenance_loop(interval: float):
    """Periodically drop expired results, batches and shared corpus entries."""
    while True:
        await asyncio.sleep(interval)
        try:
            removed = ServiceFactory.run_maintenance()
        except Exception as e:
            logger.error(LogEvent.MAINTENANCE_FAILED, error=str(e), exc_info=True)
        else:
            logger.info(LogEvent.MAINTENANCE_COMPLETED, **removed)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle."""
    logger.info(
        LogEvent.APP_STARTED,
        version=settings.version,
        api_prefix=settings.api_v1_prefix,
        checkers=settings.checker_order,
        semantic_review=settings.semantic_enabled,
        result_cache=bool(settings.redis_url),
    )
    app.state.maintenance_task = asyncio.create_task(maintenance_loop(settings.maintenance_interval_seconds))
    try:
        yield
    finally:
        app.state.maintenance_task.cancel()
        with suppress(asyncio.CancelledError):
            await app.state.maintenance_task
        await ServiceFactory.shutdown()
        logger.info(LogEvent.APP_STOPPED)


app = FastAPI(
    title=settings.project_name,
    version=settings.version,
    openapi_url=f"{settings.api_v1_prefix}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# When allow_origins is "*" browsers reject credentials
origins = settings.get_cors_origins()
allow_credentials = settings.cors_allow_credentials and origins != ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestContextMiddleware)

app.add_exception_handler(BaseApplicationError, error_handler)
app.add_exception_handler(Exception, error_handler)

for module in (health, documents, validations, batches, corpus):
    app.include_router(module.router, prefix=settings.api_v1_prefix)

Instrumentator().instrument(app).expose(app)


@app.get("/")
async def root():
    return {
        "name": settings.project_name,
        "version": settings.version,
        "docs": "/docs",
        "api_prefix": settings.api_v1_prefix,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("record_validator.main:app", host="0.0.0.0", port=8000, reload=settings.is_development)
