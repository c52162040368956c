import server


EXPECTED_SERVER_EXPORTS = (
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
    "mount_health_route",
    "setup_logging",
    "status_code_mapping_for",
    "validate_env",
    "main",
)


def test_server_export_surface() -> None:
    missing = [name for name in EXPECTED_SERVER_EXPORTS if not hasattr(server, name)]
    assert missing == []
