from __future__ import annotations

from fastapi.responses import JSONResponse

from shipit.errors import LLMTimeoutError


def error_response(message: str, status_code: int, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


def provider_failure(exc: Exception, message: str) -> JSONResponse:
    """504 for an engine timeout, 500 for any other provider failure."""
    if isinstance(exc, LLMTimeoutError):
        return error_response(f"{message} ({exc})", 504)
    return error_response(message, 500)
