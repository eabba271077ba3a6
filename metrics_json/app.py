from contextlib import asynccontextmanager

from metrics_json.core.logging_config import get_logger
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from metrics_json.api.v1 import router as api_router
from metrics_json.core.config import settings
from metrics_json.middleware.metrics_middleware import MetricsMiddleware
from metrics_json.services.metrics.instance import get_runtime_metrics

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    # Startup
    runtime = get_runtime_metrics()
    if settings.METRICS_SHOW_RUNTIME:
        runtime.start()
    logger.info(f"Runtime metrics: {'enabled' if settings.METRICS_SHOW_RUNTIME else 'disabled'}")

    yield

    # Shutdown
    runtime.stop()

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="In-process instruments and runtime figures as one JSON document",
    version=settings.VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(MetricsMiddleware)

app.include_router(api_router)
