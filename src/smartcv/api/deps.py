from __future__ import annotations

from fastapi import Request

from smartcv.core.orchestrator import ConversationOrchestrator
from smartcv.core.runtime import AppContext


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_orchestrator(request: Request) -> ConversationOrchestrator:
    return request.app.state.orchestrator
