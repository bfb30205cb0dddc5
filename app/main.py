"""
HTTP API for STARK CFO Virtual

Endpoints:
- POST /agent  - One conversational exchange with the assistant
- GET /        - Service info and enabled features
- GET /health  - Health check, with ledger storage status

ERROR CONTRACT:
- Missing message     → 400 {"error": "Mensagem não fornecida"}
- Malformed body      → 400 {"error": "Requisição inválida", "details": ...}
- Anything else       → 500 {"error": <message>, "details": "Erro ao processar requisição"}

Tool failures never reach this layer; they are answered by the model.
"""

import asyncio
import logging
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from stark import __version__
from stark.audit import create_correlation_id
from stark.config import get_settings
from stark.models.agent import AgentRequest
from stark.orchestrator import (
    MISSING_MESSAGE,
    AgentRequestError,
    AppComponents,
    create_app_components,
)


PROCESSING_ERROR = "Erro ao processar requisição"

logger = structlog.get_logger(__name__)


def create_app(components: Optional[AppComponents] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        components: Prebuilt components (tests inject fakes here).
                    If None, they are created from settings on the
                    first request, so a missing API key surfaces as a
                    500 on /agent instead of a crash at import time.
    """
    settings = get_settings().app

    logging.basicConfig(
        level=logging.DEBUG if settings.debug_mode else logging.INFO,
        format="%(message)s",
    )

    app = FastAPI(
        title=settings.service_name,
        description="CFO virtual da Starken Tecnologia",
        version=__version__,
    )
    app.state.components = components

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def get_components() -> AppComponents:
        """Get or create application components (cached on the app)."""
        if app.state.components is None:
            app.state.components = create_app_components()
        return app.state.components

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={
                "error": "Requisição inválida",
                "details": [
                    {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
                    for error in exc.errors()
                ],
            },
        )

    @app.post("/agent")
    async def agent(body: AgentRequest):
        """
        Answer one message.

        The caller owns the conversation: it sends the recent history
        and gets back only the new answer.
        """
        if not body.message or not body.message.strip():
            return JSONResponse(status_code=400, content={"error": MISSING_MESSAGE})

        correlation_id = create_correlation_id()
        try:
            flow = get_components().flow
            answer = flow.answer(body, correlation_id)
            deadline = settings.request_deadline_seconds
            if deadline:
                result = await asyncio.wait_for(answer, timeout=deadline)
            else:
                result = await answer
        except AgentRequestError as e:
            return JSONResponse(status_code=400, content={"error": str(e)})
        except asyncio.TimeoutError:
            logger.error(
                "agent_request_timeout",
                correlation_id=str(correlation_id),
                deadline_seconds=settings.request_deadline_seconds,
            )
            return JSONResponse(
                status_code=500,
                content={
                    "error": "Tempo limite da requisição excedido",
                    "details": PROCESSING_ERROR,
                },
            )
        except Exception as e:
            logger.exception(
                "agent_request_failed",
                correlation_id=str(correlation_id),
                error=str(e),
            )
            if app.state.components is not None:
                await app.state.components.audit_logger.log_error(
                    error_type=type(e).__name__,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            return JSONResponse(
                status_code=500,
                content={"error": str(e) or type(e).__name__, "details": PROCESSING_ERROR},
            )

        return result.to_response()

    @app.get("/")
    async def root():
        """Service info."""
        return {
            "status": "online",
            "service": settings.service_name,
            "version": __version__,
            "features": {
                "tools": settings.tools_enabled,
                "maxToolIterations": settings.max_tool_iterations,
                "historyWindow": settings.history_window,
                "llmProvider": settings.llm_provider,
                "storage": settings.storage_backend,
                "baseline": settings.baseline_path is not None,
                "importedFiles": True,
            },
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        health = {"status": "healthy"}
        try:
            storage = get_components().ledger_storage
            if storage is not None:
                connected = await storage.check_connection()
                health["database"] = "connected" if connected else "disconnected"
        except Exception as e:
            logger.warning("health_check_storage_failed", error=str(e))
            health["database"] = "disconnected"
        return health

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=3000,
        reload=False,
    )
