"""
Response envelopes.

Successful calls return ``{"success": true, "data": ..., "message": ...}``
(data and message only when present); failures return
``{"success": false, "error": {"message", "code", "details"}}``.
"""

from typing import Any, Dict, Optional


def _drop_empty(body: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in body.items() if value is not None}


def success_response(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    """Wrap a router result; pass model dumps, not models."""
    return {"success": True, **_drop_empty({"data": data, "message": message or None})}


def error_response(
    message: str,
    code: Optional[str] = None,
    details: Optional[Any] = None,
) -> Dict[str, Any]:
    return {
        "success": False,
        "error": _drop_empty({"message": message, "code": code or None, "details": details}),
    }
