"""Standardized API response envelope.

Every endpoint answers with the same shape:
    {"success": <bool>, "data": ..., "message": <str>}

Failures carry ``success: false`` plus ``message`` and, depending on the
failure, ``error`` (the underlying exception text) or ``errors`` (a
field-level list for validation failures). Extra top-level keys such as
``pagination`` or ``date`` may be added by individual endpoints.
"""

from typing import Any, List, Optional


def success_response(
    data: Any = None,
    message: Optional[str] = None,
    **extra: Any,
) -> dict:
    """Wrap a successful result in the standard envelope."""
    body: dict = {"success": True}
    if data is not None:
        body["data"] = data
    if message is not None:
        body["message"] = message
    body.update(extra)
    return body


def error_response(
    message: str,
    error: Optional[str] = None,
    errors: Optional[List[dict]] = None,
) -> dict:
    """Build the failure envelope."""
    body: dict = {"success": False, "message": message}
    if error is not None:
        body["error"] = error
    if errors is not None:
        body["errors"] = errors
    return body
