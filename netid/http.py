from __future__ import annotations

import ssl

import httpx

from .constants import CONNECT_TIMEOUT_SECONDS, LOGGER, REQUEST_TIMEOUT_SECONDS
from .env import Settings


def build_timeout() -> httpx.Timeout:
    return httpx.Timeout(REQUEST_TIMEOUT_SECONDS, connect=CONNECT_TIMEOUT_SECONDS)


def build_ssl_context(settings: Settings) -> ssl.SSLContext:
    context = ssl.create_default_context(cafile=settings.ca_bundle)
    if settings.client_cert:
        context.load_cert_chain(settings.client_cert, settings.client_key)
    return context


def build_http_client(
    settings: Settings,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    debug_enabled = settings.debug

    async def log_request(request: httpx.Request) -> None:
        if not debug_enabled:
            return
        LOGGER.info("Net iD request %s %s", request.method, request.url)

    async def log_response(response: httpx.Response) -> None:
        if not debug_enabled:
            return
        LOGGER.info(
            "Net iD response %s %s -> %s",
            response.request.method,
            response.request.url,
            response.status_code,
        )
        if response.status_code >= 400:
            body = await response.aread()
            text = body.decode("utf-8", errors="replace")
            if len(text) > 1000:
                text = text[:1000] + "...<truncated>"
            LOGGER.warning("Net iD error body: %s", text)

    options: dict = {
        "base_url": settings.service_url,
        "timeout": build_timeout(),
        "event_hooks": {"request": [log_request], "response": [log_response]},
    }
    if transport is not None:
        options["transport"] = transport
    elif not settings.disable_https:
        options["verify"] = build_ssl_context(settings)

    return httpx.AsyncClient(**options)
