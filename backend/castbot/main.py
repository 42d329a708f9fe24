from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI

from .bootstrap import Services, build_services
from .cron_routes import router as cron_router
from .schemas import HealthResponse
from .settings import get_settings
from .webhook_routes import get_services, router as webhook_router

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")


def create_app(services: Optional[Services] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = services is None
        app.state.services = services or build_services(get_settings())
        try:
            yield
        finally:
            close = getattr(app.state.services.messenger, "close", None)
            if owned and close is not None:
                await close()

    app = FastAPI(title="Random Cast Player Bot", version="0.3.0", lifespan=lifespan)
    app.include_router(webhook_router)
    app.include_router(cron_router)

    @app.get("/health", response_model=HealthResponse)
    def health(svc: Services = Depends(get_services)) -> HealthResponse:
        return HealthResponse(ok=True, service="castbot", llm_enabled=bool(svc.completion.enabled))

    return app


app = create_app()
