from datetime import datetime, timezone
from typing import Any, Optional

from bson import ObjectId
from fastapi.responses import JSONResponse


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Generate a document id (string form of a fresh ObjectId)."""
    return str(ObjectId())


def merge_non_null(current: Optional[dict], changes: dict) -> dict:
    """Overlay `changes` on `current`, skipping keys whose new value is None."""
    merged = dict(current or {})
    merged.update({k: v for k, v in changes.items() if v is not None})
    return merged


def success_response(
    data: Optional[Any] = None,
    message: str = "Success",
    code: int = 200,
) -> JSONResponse:
    """Standard success JSON response."""
    content = {"success": True, "message": message}
    if data is not None:
        content["data"] = data
    return JSONResponse(status_code=code, content=content)


def error_response(
    message: str,
    code: int = 400,
    error_type: str = "Error",
    data: Optional[Any] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    """Standard error JSON response."""
    content = {
        "success": False,
        "error": {"code": code, "type": error_type, "message": message},
    }
    if data is not None:
        content["data"] = data
    return JSONResponse(status_code=code, content=content, headers=headers)
