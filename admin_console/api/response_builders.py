"""
Response builders for consistent error responses
"""

from fastapi.responses import JSONResponse
from typing import Any, Dict, List, Optional

from ..errors import ApiError, ConflictError, ConsoleError, NotFoundError, ValidationError


def status_for_error(err: ConsoleError) -> int:
    """HTTP status the console answers with for a given failure"""
    if isinstance(err, ValidationError):
        return 400
    if isinstance(err, NotFoundError):
        return 404
    if isinstance(err, ConflictError):
        return 409
    if isinstance(err, ApiError) and err.status_code and 400 <= err.status_code < 500:
        return err.status_code
    # Backend down or failing
    return 502


def error_code(err: ConsoleError) -> str:
    if isinstance(err, ValidationError):
        return "validation_failed"
    if isinstance(err, NotFoundError):
        return "not_found"
    if isinstance(err, ConflictError):
        return "tenant_not_empty"
    return "backend_error"


def build_error_response(err: ConsoleError,
                         notices: Optional[List[Dict[str, Any]]] = None,
                         **extra: Any) -> JSONResponse:
    """Build the JSON error body; the backend message is passed through verbatim"""
    content = {
        "error": error_code(err),
        "detail": err.message,
        "notices": notices or [],
    }
    if isinstance(err, ValidationError) and err.field:
        content["field"] = err.field
    content.update(extra)
    return JSONResponse(status_code=status_for_error(err), content=content)
