"""
Standard response envelopes.
"""
from typing import Any, Dict, List, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def api_response(status_code: int, data: Any, message: str = "Success") -> JSONResponse:
    """Wrap a payload in the ``{statusCode, data, message, success}`` envelope."""
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder({
            "statusCode": status_code,
            "data": data,
            "message": message,
            "success": status_code < 400,
        }),
    )


def error_response(status_code: int, message: str, errors: Optional[List[Any]] = None) -> JSONResponse:
    """Wrap an error in the ``{statusCode, message, success, errors}`` envelope."""
    body: Dict[str, Any] = {
        "statusCode": status_code,
        "message": message,
        "success": False,
        "errors": errors or [],
    }
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))
