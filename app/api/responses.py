"""
Response envelope: {success, message?, data?, count?, details?}
"""
from typing import Any, Optional


def envelope(data: Any = None, message: Optional[str] = None, count: Optional[int] = None) -> dict:
    body: dict = {"success": True}
    if message is not None:
        body["message"] = message
    if count is not None:
        body["count"] = count
    if data is not None:
        body["data"] = data
    return body


def error_envelope(
    status_code: int,
    message: str,
    details: Optional[list] = None,
    **extra: Any,
) -> dict:
    body: dict = {
        "success": False,
        "status": "fail" if 400 <= status_code < 500 else "error",
        "message": message,
    }
    if details:
        body["details"] = details
    body.update(extra)
    return body
