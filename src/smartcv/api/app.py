from __future__ import annotations

import logging
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from smartcv.api.routes import router as webhook_router
from smartcv.core.orchestrator import ConversationOrchestrator
from smartcv.core.runtime import AppContext, build_context
from smartcv.db.init import init_database
from smartcv.logging_config import configure_logging, request_id_var

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-Id"


def create_app(context: AppContext | None = None) -> FastAPI:
    context = context or build_context()
    settings = context.settings
    configure_logging(settings)

    app = FastAPI(title=settings.app_name)
    app.state.context = context
    app.state.orchestrator = ConversationOrchestrator(context)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list or ["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            logger.info(
                "Request complete method=%s path=%s status=%s duration_ms=%.1f",
                request.method,
                request.url.path,
                response.status_code,
                (time.perf_counter() - started) * 1000,
            )
            return response
        finally:
            request_id_var.reset(token)

    @app.on_event("startup")
    def _startup() -> None:
        init_database(context)
        context.start()

    @app.on_event("shutdown")
    def _shutdown() -> None:
        context.tasks.shutdown()

    @app.get("/health")
    def health() -> JSONResponse:
        return JSONResponse(
            {
                "status": "ok",
                "workers": context.tasks.task_names,
                "channels": sorted(context.channels),
            }
        )

    app.include_router(webhook_router)
    return app
