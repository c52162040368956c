from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

from dotenv import load_dotenv
from pydantic import AnyHttpUrl, ValidationError

from polling.session import SESSION_TTL_SECONDS

from .constants import (
    DEFAULT_BASE_PATH,
    DEFAULT_SERVICE_HOSTNAME,
    DEFAULT_SERVICE_PATH,
    DEFAULT_SERVICE_PORT,
    LOGGER,
)


def is_truthy(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_env_int(key: str, default: int) -> int:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{key} must be an integer value.")


def _get_env_str(key: str) -> str | None:
    raw = os.getenv(key, "").strip()
    return raw or None


def load_env() -> None:
    env_path = Path(__file__).resolve().parent.parent / ".env"
    if not env_path.exists():
        return
    load_dotenv(env_path, override=True)


def validate_env() -> None:
    required = (
        "NETID_PUBLIC_URL",
        "NETID_SESSION_SECRET",
    )
    missing = [key for key in required if not os.getenv(key, "").strip()]
    if missing:
        raise RuntimeError(f"Missing required environment variables: {', '.join(missing)}")

    public_url = os.getenv("NETID_PUBLIC_URL", "").strip()
    try:
        AnyHttpUrl(public_url)
    except ValidationError as error:
        raise RuntimeError(f"NETID_PUBLIC_URL is not a valid URL: {public_url}") from error
    parsed_public_url = urlparse(public_url)
    if parsed_public_url.scheme != "https" or not parsed_public_url.netloc:
        raise RuntimeError(
            "NETID_PUBLIC_URL must be a valid public HTTPS URL (for example: "
            "https://login.example.com)."
        )

    port = _get_env_int("NETID_SERVICE_PORT", DEFAULT_SERVICE_PORT)
    if not 0 < port < 65536:
        raise RuntimeError("NETID_SERVICE_PORT must be between 1 and 65535.")

    if _get_env_int("NETID_SESSION_TTL_SECONDS", SESSION_TTL_SECONDS) <= 0:
        raise RuntimeError("NETID_SESSION_TTL_SECONDS must be positive.")

    if _get_env_int("NETID_MAX_RETRIES", 2) < 0:
        raise RuntimeError("NETID_MAX_RETRIES must not be negative.")

    client_cert = _get_env_str("NETID_CLIENT_CERT")
    client_key = _get_env_str("NETID_CLIENT_KEY")
    if client_key and not client_cert:
        raise RuntimeError("NETID_CLIENT_KEY requires NETID_CLIENT_CERT.")
    if is_truthy(os.getenv("NETID_DISABLE_HTTPS")):
        LOGGER.warning("NETID_DISABLE_HTTPS is set; the authentication service is called over plain HTTP.")


def setup_logging() -> bool:
    debug_enabled = is_truthy(os.getenv("NETID_DEBUG", "1"))
    if debug_enabled:
        logging.basicConfig(level=logging.INFO)
        LOGGER.setLevel(logging.INFO)
        logging.getLogger("netid.polling").setLevel(logging.INFO)
    return debug_enabled


@dataclass(frozen=True)
class Settings:
    public_url: str
    session_secret: str
    base_path: str = DEFAULT_BASE_PATH
    session_store_path: str | None = None
    session_ttl_seconds: int = SESSION_TTL_SECONDS
    service_hostname: str = DEFAULT_SERVICE_HOSTNAME
    service_port: int = DEFAULT_SERVICE_PORT
    service_path: str = DEFAULT_SERVICE_PATH
    disable_https: bool = False
    ca_bundle: str | None = None
    client_cert: str | None = None
    client_key: str | None = None
    max_retries: int = 2
    complete_redirect_url: str | None = None
    debug: bool = True

    @property
    def service_url(self) -> str:
        scheme = "http" if self.disable_https else "https"
        path = "/" + self.service_path.strip("/")
        return f"{scheme}://{self.service_hostname}:{self.service_port}{path}"


def load_settings() -> Settings:
    return Settings(
        public_url=os.getenv("NETID_PUBLIC_URL", "").strip(),
        session_secret=os.getenv("NETID_SESSION_SECRET", "").strip(),
        base_path=_get_env_str("NETID_BASE_PATH") or DEFAULT_BASE_PATH,
        session_store_path=_get_env_str("NETID_SESSION_STORE_PATH"),
        session_ttl_seconds=_get_env_int("NETID_SESSION_TTL_SECONDS", SESSION_TTL_SECONDS),
        service_hostname=_get_env_str("NETID_SERVICE_HOSTNAME") or DEFAULT_SERVICE_HOSTNAME,
        service_port=_get_env_int("NETID_SERVICE_PORT", DEFAULT_SERVICE_PORT),
        service_path=_get_env_str("NETID_SERVICE_PATH") or DEFAULT_SERVICE_PATH,
        disable_https=is_truthy(os.getenv("NETID_DISABLE_HTTPS")),
        ca_bundle=_get_env_str("NETID_CA_BUNDLE"),
        client_cert=_get_env_str("NETID_CLIENT_CERT"),
        client_key=_get_env_str("NETID_CLIENT_KEY"),
        max_retries=_get_env_int("NETID_MAX_RETRIES", 2),
        complete_redirect_url=_get_env_str("NETID_COMPLETE_REDIRECT_URL"),
        debug=is_truthy(os.getenv("NETID_DEBUG", "1")),
    )
