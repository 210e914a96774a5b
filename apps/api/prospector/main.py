from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from prospector.api.routes import router as api_router
from prospector.core.config import get_settings
from prospector.logging import configure_logging
from prospector.middleware.correlation_id import CorrelationIdMiddleware
from prospector.middleware.request_logging import RequestLoggingMiddleware
from prospector.otel import get_fastapi_server_request_hook, setup_otel


configure_logging()
logger = logging.getLogger("prospector.lifecycle")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info("system.started", extra={"status": settings.app_env})
    yield


app = FastAPI(title="Prospector API", version="0.1.0", lifespan=lifespan)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)
app.include_router(api_router)

settings = get_settings()
if settings.otel_enabled:
    setup_otel("prospector-api", True)

if not getattr(app, "_is_instrumented_by_opentelemetry", False):
    FastAPIInstrumentor().instrument_app(app, server_request_hook=get_fastapi_server_request_hook())
