from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from polling.constants import Endpoints
from polling.status_codes import accepts_auth_api


class FailureMode(str, Enum):
    REDIRECT_CLIENT = "redirect-client"
    PROBLEM_JSON = "problem-json"


@dataclass(frozen=True)
class PollerPaths:
    wait: str
    cancel: str
    failed: str
    launch: str
    failure_mode: FailureMode

    @classmethod
    def default(cls) -> PollerPaths:
        return cls(
            wait=Endpoints.WAIT,
            cancel=Endpoints.CANCEL,
            failed=Endpoints.FAILED,
            launch=Endpoints.LAUNCH,
            failure_mode=FailureMode.REDIRECT_CLIENT,
        )

    @classmethod
    def for_http_semantic_logic(cls) -> PollerPaths:
        return cls(
            wait=Endpoints.POLLER,
            cancel=Endpoints.CANCEL,
            failed=Endpoints.FAILED,
            launch=Endpoints.LAUNCH,
            failure_mode=FailureMode.PROBLEM_JSON,
        )


def poller_paths_for(accept_header: str | None) -> PollerPaths:
    if accepts_auth_api(accept_header):
        return PollerPaths.for_http_semantic_logic()
    return PollerPaths.default()
