from __future__ import annotations

from enum import Enum
from typing import Any

from starlette.responses import JSONResponse, RedirectResponse, Response

PROBLEM_JSON_TYPE = "application/problem+json"


class ErrorCode(str, Enum):
    MISSING_PARAMETERS = "missing_parameters"
    INVALID_INPUT = "invalid_input"
    INVALID_SERVER_STATE = "invalid_server_state"
    EXTERNAL_SERVICE_ERROR = "external_service_error"
    GENERIC_ERROR = "generic_error"


_TITLES = {
    ErrorCode.MISSING_PARAMETERS: "Missing parameters",
    ErrorCode.INVALID_INPUT: "Invalid input",
    ErrorCode.INVALID_SERVER_STATE: "Invalid server state",
    ErrorCode.EXTERNAL_SERVICE_ERROR: "External service error",
    ErrorCode.GENERIC_ERROR: "Authentication failed",
}


class FlowError(RuntimeError):
    """Ends the current request with a fixed outcome."""

    status_code = 500

    def to_response(self) -> Response:
        raise NotImplementedError


class RedirectError(FlowError):
    status_code = 303

    def __init__(self, url: str) -> None:
        super().__init__(f"Redirecting to {url}")
        self.url = url

    def to_response(self) -> Response:
        return RedirectResponse(url=self.url, status_code=self.status_code)


class ProblemError(FlowError):
    def __init__(
        self,
        code: ErrorCode,
        detail: str | None = None,
        view_data: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(detail or _TITLES[code])
        self.code = code
        self.detail = detail
        self.view_data = view_data or {}

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "type": f"urn:netid:error:{self.code.value}",
            "title": _TITLES[self.code],
            "status": self.status_code,
        }
        if self.detail:
            payload["detail"] = self.detail
        if self.view_data:
            payload["data"] = self.view_data
        return payload

    def to_response(self) -> Response:
        return JSONResponse(
            self.to_payload(),
            status_code=self.status_code,
            media_type=PROBLEM_JSON_TYPE,
        )


class BadRequestError(ProblemError):
    status_code = 400


class InternalServerError(ProblemError):
    status_code = 500


class MethodNotAllowedError(FlowError):
    status_code = 405

    def __init__(self, method: str) -> None:
        super().__init__(f"Method {method} is not allowed.")
        self.method = method

    def to_response(self) -> Response:
        return JSONResponse(
            {
                "type": "about:blank",
                "title": "Method not allowed",
                "status": self.status_code,
                "detail": str(self),
            },
            status_code=self.status_code,
            media_type=PROBLEM_JSON_TYPE,
        )
