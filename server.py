from __future__ import annotations

import os

import uvicorn

from netid.app import build_authenticator, create_app, mount_health_route
from netid.client import NetIdAccessClient
from netid.env import Settings, is_truthy, load_env, load_settings, setup_logging, validate_env
from polling.authenticator import PollingAuthenticator
from polling.client import AuthClient, AuthenticateError, PollError, ServiceError, call_with_retry
from polling.poller import WebServicePoller
from polling.session import FileSessionStore, MemorySessionStore
from polling.status_codes import LEGACY_MAPPING, SEMANTIC_MAPPING, status_code_mapping_for

__all__ = [
    "AuthClient",
    "AuthenticateError",
    "FileSessionStore",
    "LEGACY_MAPPING",
    "MemorySessionStore",
    "NetIdAccessClient",
    "PollError",
    "PollingAuthenticator",
    "SEMANTIC_MAPPING",
    "ServiceError",
    "Settings",
    "WebServicePoller",
    "build_authenticator",
    "call_with_retry",
    "create_app",
    "is_truthy",
    "load_env",
    "load_settings",
    "main",
    "mount_health_route",
    "setup_logging",
    "status_code_mapping_for",
    "validate_env",
]


def main() -> None:
    host = os.getenv("HTTP_HOST", "127.0.0.1")
    port = int(os.getenv("HTTP_PORT", "8000"))
    app = create_app()
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
