"""JSON envelope helpers: ``{success, data|error}``."""
from typing import Any, Dict, List, Optional

from fastapi.encoders import jsonable_encoder
from starlette.responses import JSONResponse


def success(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True, "data": jsonable_encoder(data)}
    if message:
        body["message"] = message
    return body


def failure(status_code: int, error: str, issues: Optional[List[Any]] = None) -> JSONResponse:
    body: Dict[str, Any] = {"success": False, "error": error}
    if issues:
        body["issues"] = jsonable_encoder(issues)
    return JSONResponse(body, status_code=status_code)
