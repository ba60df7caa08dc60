"""JSON envelope shared by every ``/api`` response.

Success: ``{"success": true, "data": ..., "timestamp": ..., "status": 200}``
Error:   ``{"success": false, "error": ..., "timestamp": ..., "status": 4xx}``
"""

from __future__ import annotations

from typing import Any

from fastapi.responses import JSONResponse

from healing_hub.libs.storage import utc_now_iso


def success_body(data: Any = None, status: int = 200) -> dict[str, Any]:
    return {"success": True, "data": data, "timestamp": utc_now_iso(), "status": status}


def error_body(error: Any, status: int = 400) -> dict[str, Any]:
    return {"success": False, "error": error, "timestamp": utc_now_iso(), "status": status}


def ok(data: Any = None, status: int = 200) -> JSONResponse:
    return JSONResponse(success_body(data, status), status_code=status)


def fail(error: Any, status: int = 400, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(error_body(error, status), status_code=status, headers=headers)


__all__ = ["error_body", "fail", "ok", "success_body"]
