"""HTTP middleware: request context logging and the CORS boundary.

`create_app` registers `cors_middleware` last so that it wraps every
other layer: preflight requests are answered before routing, auth or
logging run, and every other response leaves with the CORS headers set.
"""

import json
import logging
import time
import uuid

from fastapi import Request
from fastapi.responses import JSONResponse, Response

logger = logging.getLogger("codefuture.api")

ALLOWED_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
ALLOWED_HEADERS = "Content-Type, Authorization, X-Title"


def _cors_headers(request: Request) -> dict:
    return {
        "Access-Control-Allow-Origin": request.headers.get("Origin") or "*",
        "Access-Control-Allow-Methods": ALLOWED_METHODS,
        "Access-Control-Allow-Headers": ALLOWED_HEADERS,
        "Access-Control-Allow-Credentials": "true",
    }


async def cors_middleware(request: Request, call_next):
    """Reflect the caller's origin and short-circuit every OPTIONS request with a bare 200."""
    headers = _cors_headers(request)
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=headers)
    response = await call_next(request)
    response.headers.update(headers)
    return response


def _request_summary(request: Request, started: float) -> dict:
    return {
        "request_id": request.state.request_id,
        "method": request.method,
        "path": request.url.path,
        "user_id": getattr(request.state, "user_id", None),
        "duration_ms": round((time.perf_counter() - started) * 1000.0, 2),
    }


async def request_context_middleware(request: Request, call_next):
    """Tag each request with an X-Request-ID and log one JSON line per API call.

    Unexpected exceptions are rendered here as a 500 `{"error": ...}` body so
    the response still passes back through the CORS layer.
    """
    request.state.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        logger.exception("unhandled_error %s", json.dumps(_request_summary(request, started)))
        response = JSONResponse(status_code=500, content={"error": "Internal server error"})
    response.headers["X-Request-ID"] = request.state.request_id
    if request.url.path.startswith("/api"):
        summary = _request_summary(request, started)
        summary["status"] = response.status_code
        logger.info("api_request %s", json.dumps(summary))
    return response
