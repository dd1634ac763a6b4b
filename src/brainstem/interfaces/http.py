"""HTTP interface - one POST endpoint per capability.

    POST /functions/v1/{capability}   body: JSON object (optional)
    GET  /health                      liveness
"""

import json
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from brainstem import __version__
from brainstem.agents.service import CapabilityService
from brainstem.core.logging import get_logger

logger = get_logger("interfaces.http")


async def _read_body(request: Request) -> Any:
    """Empty body -> None; undecodable body is passed on as text."""
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return raw.decode("utf-8", errors="replace")


def _error(message: str) -> JSONResponse:
    return JSONResponse(status_code=500, content={"status": "error", "error": message})


def create_app(service: CapabilityService) -> FastAPI:
    """Build the ASGI app around a wired CapabilityService."""
    app = FastAPI(title="Brainstem", version=__version__, docs_url=None, redoc_url=None)

    # Every failure uses the error envelope; 200 and 500 are the only statuses
    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        logger.warning(f"{request.method} {request.url.path}: {exc.status_code} {exc.detail}")
        return _error(str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def request_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.warning(f"{request.method} {request.url.path}: invalid request")
        return _error("Invalid request")

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error(f"Unhandled exception on {request.url.path}: {exc}")
        return _error(str(exc))

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    @app.post("/functions/v1/{capability}")
    async def invoke(capability: str, request: Request) -> JSONResponse:
        body = await _read_body(request)
        logger.debug(f"POST {capability}")
        status_code, payload = await service.handle(capability, body)
        return JSONResponse(status_code=status_code, content=payload)

    return app
