"""HTTP surface for MINDSCAN.

Three endpoints run one analysis request:

* ``POST /api/analyze-all`` waits for all backends and answers with one
  JSON object keyed by provider alias;
* ``POST /api/analyze-all/stream`` answers with a ``text/event-stream``
  of ``data: <json>\\n\\n`` frames, one per backend in completion order,
  followed by a final ``done`` frame;
* ``POST /api/analyze`` runs a single backend, named by its provider
  alias in ``modelProvider``, and answers like ``/api/analyze-all``
  with one entry.

The caller identifies the paying account with the ``X-Account-Id``
header.  Without it, and with a ledger configured, results are
returned as previews.

Run with ``uvicorn mindscan.api.server:app`` or ``mindscan serve``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from ..config import MIN_TEXT_CHARS, PROJECT_NAME, PROTOCOL_VERSION, llm_mode
from ..errors import AdmissionDenied, TotalFailure
from ..llm.models import ANALYSIS_KINDS, AnalysisInput
from ..llm.policy import alias_for
from ..orchestration.service import AnalysisService, service_from_env

logger = logging.getLogger(__name__)


class AnalyzeRequest(BaseModel):
    """Request body shared by the analysis endpoints."""

    text: str
    analysisType: str = "cognitive"


class SingleAnalyzeRequest(AnalyzeRequest):
    """Request body of the single-provider endpoint."""

    modelProvider: str


class BadRequest(Exception):
    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


def to_analysis_input(body: AnalyzeRequest) -> AnalysisInput:
    """Validate a request body.

    Raises:
        BadRequest: If the text is too short or the kind unknown.
    """
    if not body.text.strip():
        raise BadRequest("Text is required")
    if len(body.text) < MIN_TEXT_CHARS:
        raise BadRequest(
            f"Text is too short. Please provide at least {MIN_TEXT_CHARS} characters for analysis."
        )
    if body.analysisType not in ANALYSIS_KINDS:
        raise BadRequest(
            f"Invalid analysis type '{body.analysisType}'. Expected one of: {', '.join(ANALYSIS_KINDS)}"
        )
    return AnalysisInput(text=body.text, kind=body.analysisType)


def create_app(service: Optional[AnalysisService] = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        service: The analysis service to use.  When omitted one is
            built from the environment at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if getattr(app.state, "service", None) is None:
            app.state.service = service_from_env()
        yield

    app = FastAPI(title=f"{PROJECT_NAME} API", version=PROTOCOL_VERSION, lifespan=lifespan)
    app.state.service = service

    @app.exception_handler(RequestValidationError)
    async def _invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        detail = errors[0].get("msg", "Invalid request body") if errors else "Invalid request body"
        return JSONResponse(status_code=400, content={"message": f"Invalid request body: {detail}"})

    @app.exception_handler(BadRequest)
    async def _bad_request(request: Request, exc: BadRequest) -> JSONResponse:
        return JSONResponse(status_code=400, content={"message": exc.message})

    @app.exception_handler(AdmissionDenied)
    async def _admission_denied(request: Request, exc: AdmissionDenied) -> JSONResponse:
        return JSONResponse(
            status_code=402,
            content={"message": exc.reason, "creditsRequired": exc.required},
        )

    @app.exception_handler(TotalFailure)
    async def _total_failure(request: Request, exc: TotalFailure) -> JSONResponse:
        return JSONResponse(status_code=500, content={"message": str(exc)})

    @app.get("/health")
    async def health(request: Request) -> Dict[str, Any]:
        current: AnalysisService = request.app.state.service
        return {
            "status": "ok",
            "mode": llm_mode(),
            "providers": [alias_for(b) for b in current.registry],
        }

    @app.post("/api/analyze-all")
    async def analyze_all(
        body: AnalyzeRequest,
        request: Request,
        x_account_id: Optional[str] = Header(default=None),
    ) -> Dict[str, Any]:
        analysis_input = to_analysis_input(body)
        current: AnalysisService = request.app.state.service
        report = await current.analyze(analysis_input, account_id=x_account_id)
        return report.to_body()

    @app.post("/api/analyze")
    async def analyze_single(
        body: SingleAnalyzeRequest,
        request: Request,
        x_account_id: Optional[str] = Header(default=None),
    ) -> Dict[str, Any]:
        analysis_input = to_analysis_input(body)
        current: AnalysisService = request.app.state.service
        try:
            current.backend_for(body.modelProvider)
        except ValueError as exc:
            raise BadRequest(str(exc))
        report = await current.analyze_one(analysis_input, body.modelProvider, account_id=x_account_id)
        return report.to_body()

    @app.post("/api/analyze-all/stream")
    async def analyze_all_stream(
        body: AnalyzeRequest,
        request: Request,
        x_account_id: Optional[str] = Header(default=None),
    ) -> StreamingResponse:
        analysis_input = to_analysis_input(body)
        current: AnalysisService = request.app.state.service

        async def frames() -> AsyncIterator[str]:
            events = current.stream(analysis_input, account_id=x_account_id)
            try:
                async for event in events:
                    yield event.to_frame()
            finally:
                await events.aclose()

        return StreamingResponse(
            frames(),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )

    return app


app = create_app()
