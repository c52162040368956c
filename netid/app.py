from __future__ import annotations

import contextlib

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from polling.authenticator import PollingAuthenticator
from polling.client import AuthClient
from polling.info import AuthenticatorInformationProvider
from polling.session import FileSessionStore, MemorySessionStore, SessionStore

from .client import NetIdAccessClient
from .constants import APP_VERSION, LOGGER, SERVICE_NAME
from .env import Settings, load_env, load_settings, setup_logging, validate_env
from .http import build_http_client


def mount_health_route(app: Starlette) -> None:
    async def health_route(request: Request) -> Response:
        del request
        return JSONResponse(
            {
                "status": "ok",
                "version": APP_VERSION,
                "service": SERVICE_NAME,
            }
        )

    app.router.routes.append(Route("/health", health_route, methods=["GET"]))


def build_session_store(settings: Settings) -> SessionStore:
    if settings.session_store_path:
        return FileSessionStore(settings.session_store_path, settings.session_ttl_seconds)
    return MemorySessionStore(settings.session_ttl_seconds)


def build_authenticator(
    settings: Settings,
    *,
    client: AuthClient | None = None,
    session_store: SessionStore | None = None,
) -> PollingAuthenticator:
    if client is None:
        client = NetIdAccessClient(
            build_http_client(settings),
            max_retries=settings.max_retries,
        )
    return PollingAuthenticator(
        client=client,
        info=AuthenticatorInformationProvider(settings.public_url, settings.base_path),
        session_store=session_store or build_session_store(settings),
        session_secret=settings.session_secret,
        complete_redirect_url=settings.complete_redirect_url,
    )


def create_app(
    settings: Settings | None = None,
    *,
    client: AuthClient | None = None,
    session_store: SessionStore | None = None,
) -> Starlette:
    if settings is None:
        load_env()
        setup_logging()
        validate_env()
        settings = load_settings()

    authenticator = build_authenticator(settings, client=client, session_store=session_store)

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette):
        del app
        yield
        await authenticator.client.aclose()

    app = Starlette(lifespan=lifespan)
    authenticator.mount_routes(app)
    mount_health_route(app)
    setattr(app, "_authenticator", authenticator)
    LOGGER.info(
        "Serving %s authentication under %s",
        SERVICE_NAME,
        authenticator.info.base_uri(),
    )
    return app
