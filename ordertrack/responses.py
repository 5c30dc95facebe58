# ordertrack/responses.py
"""Uniform JSON envelope shared by every endpoint."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def success(
    data: Any = None,
    message: str = "Success",
    status_code: int = 200,
    response_code: str = "SUCCESS",
) -> JSONResponse:
    body: Dict[str, Any] = {
        "success": True,
        "message": message,
        "responseCode": response_code,
        "statusCode": status_code,
    }
    if data is not None:
        body["data"] = jsonable_encoder(data, by_alias=True)
    body["timestamp"] = _timestamp()
    return JSONResponse(status_code=status_code, content=body)


def created(data: Any, message: str = "Created successfully") -> JSONResponse:
    return success(data, message, status_code=201, response_code="CREATED")


def deleted(message: str = "Deleted successfully") -> JSONResponse:
    return success(None, message, response_code="DELETED")


def error(
    message: str,
    status_code: int,
    error_code: str,
    errors: Optional[List[str]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    body: Dict[str, Any] = {
        "success": False,
        "message": message,
        "errorCode": error_code,
        "statusCode": status_code,
    }
    if errors:
        body["errors"] = list(errors)
    body["timestamp"] = _timestamp()
    return JSONResponse(status_code=status_code, content=body, headers=headers)
