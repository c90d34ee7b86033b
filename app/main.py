from fastapi import FastAPI

from app.shiftledger.api import api_router
from app.shiftledger.core.config import settings
from app.shiftledger.core.errors import setup_exception_handlers
from app.shiftledger.core.logging import configure_logging
from app.shiftledger.middleware.observability import ObservabilityMiddleware
from app.shiftledger.middleware.trace import TraceIdMiddleware


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title=settings.APP_NAME)
    app.add_middleware(TraceIdMiddleware)
    app.add_middleware(ObservabilityMiddleware)
    setup_exception_handlers(app)
    app.include_router(api_router)
    return app


app = create_app()
