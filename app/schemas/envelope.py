"""Standard response envelope shared by every action response."""
from typing import Any, Dict, List, Optional

from pydantic import ValidationError


def success_response(data: Any, request_id: Optional[str] = None) -> Dict[str, Any]:
    response = {"ok": True, "data": data}
    if request_id:
        response["meta"] = {"requestId": request_id}
    return response


def error_response(
    code: str,
    message: str,
    request_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    response: Dict[str, Any] = {"ok": False, "error": {"code": code, "message": message}}
    if details:
        response["error"]["details"] = details
    if request_id:
        response["meta"] = {"requestId": request_id}
    return response


def format_validation_error(exc: ValidationError) -> Dict[str, List[Dict[str, Any]]]:
    return {
        "issues": [
            {"path": list(issue["loc"]), "message": issue["msg"], "code": issue["type"]}
            for issue in exc.errors()
        ]
    }


def validation_error_response(
    exc: ValidationError,
    request_id: Optional[str] = None,
    message: str = "Payload validation failed",
) -> Dict[str, Any]:
    return error_response("VALIDATION_ERROR", message, request_id, format_validation_error(exc))
