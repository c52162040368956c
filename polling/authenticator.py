from __future__ import annotations

import secrets
from typing import Any, Awaitable, Callable

from starlette.applications import Starlette
from starlette.datastructures import FormData
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response
from starlette.routing import Route

from polling.client import AuthClient
from polling.constants import LOGGER, Endpoints, FormValueNames, SessionKeys
from polling.cookie_signing import CookieSigner
from polling.errors import FlowError
from polling.flow import (
    LAUNCH_SCHEME,
    CancelLogic,
    EnterIdentifierLogic,
    FailedLogic,
    FlowContext,
    IdentifierForm,
    LaunchLogic,
    WaitLogic,
    parse_bool,
)
from polling.info import AuthenticatorInformationProvider
from polling.models import AuthenticatedState, AuthenticationResult
from polling.paths import poller_paths_for
from polling.preferences import PREFERENCES_COOKIE, UserPreferences
from polling.results import PollingResult, View
from polling.session import PollingSession, Session, SessionStore
from polling.status_codes import status_code_mapping_for

SESSION_COOKIE = "netid_session"

OnAuthenticated = Callable[[Request, AuthenticationResult, Session], Awaitable[Response]]
StepHandler = Callable[[FlowContext, Request], Awaitable[Any]]


class PollingAuthenticator:
    def __init__(
        self,
        *,
        client: AuthClient,
        info: AuthenticatorInformationProvider,
        session_store: SessionStore,
        session_secret: str,
        on_authenticated: OnAuthenticated | None = None,
        complete_redirect_url: str | None = None,
        launch_scheme: str = LAUNCH_SCHEME,
    ) -> None:
        self.client = client
        self.info = info
        self.session_store = session_store
        self.complete_redirect_url = complete_redirect_url
        self.secure_cookies = info.public_url.startswith("https://")

        self._session_signer = CookieSigner(session_secret, "session")
        self._preferences_signer = CookieSigner(session_secret, "preferences")
        self._on_authenticated = on_authenticated or self._default_on_authenticated

        self._enter_identifier = EnterIdentifierLogic()
        self._launch = LaunchLogic(launch_scheme)
        self._wait = WaitLogic()
        self._cancel = CancelLogic()
        self._failed = FailedLogic()

    # -- routes ----------------------------------------------------------------

    def routes(self) -> list[Route]:
        methods = ["GET", "POST"]
        return [
            Route(self.info.path(), self._handle_enter_identifier, methods=methods),
            Route(self.info.path(Endpoints.WAIT), self._handle_wait, methods=methods),
            Route(self.info.path(Endpoints.POLLER), self._handle_wait, methods=methods),
            Route(self.info.path(Endpoints.LAUNCH), self._handle_launch, methods=methods),
            Route(self.info.path(Endpoints.CANCEL), self._handle_cancel, methods=methods),
            Route(self.info.path(Endpoints.FAILED), self._handle_failed, methods=methods),
        ]

    def mount_routes(self, app: Starlette) -> None:
        app.router.routes.extend(self.routes())

    # -- handlers --------------------------------------------------------------

    async def _handle_enter_identifier(self, request: Request) -> Response:
        return await self._dispatch(request, self._enter_identifier_step)

    async def _handle_wait(self, request: Request) -> Response:
        return await self._dispatch(request, self._wait_step)

    async def _handle_launch(self, request: Request) -> Response:
        return await self._dispatch(request, self._launch_step)

    async def _handle_cancel(self, request: Request) -> Response:
        return await self._dispatch(request, self._cancel_step)

    async def _handle_failed(self, request: Request) -> Response:
        return await self._dispatch(request, self._failed_step)

    async def _enter_identifier_step(self, context: FlowContext, request: Request) -> Any:
        if request.method == "GET":
            return self._enter_identifier.get(context)

        form = await request.form()
        identifier_form = IdentifierForm.parse(
            _form_value(form, FormValueNames.USER_NAME),
            _form_value(form, FormValueNames.USE_SAME_DEVICE),
            context.preferences,
        )
        return await self._enter_identifier.post(context, identifier_form)

    async def _wait_step(self, context: FlowContext, request: Request) -> Any:
        if request.method == "GET":
            return self._wait.get(context)

        form = await request.form()
        is_polling_done = parse_bool(_form_value(form, FormValueNames.POLLING_DONE))
        return await self._wait.post(context, is_polling_done)

    async def _launch_step(self, context: FlowContext, request: Request) -> Any:
        if request.method == "GET":
            return await self._launch.get(context)

        form = await request.form()
        is_polling_done = parse_bool(_form_value(form, FormValueNames.POLLING_DONE))
        return await self._launch.post(context, is_polling_done)

    async def _cancel_step(self, context: FlowContext, request: Request) -> Any:
        if request.method == "GET":
            return self._cancel.get(context)
        return self._cancel.post(context)

    async def _failed_step(self, context: FlowContext, request: Request) -> Any:
        if request.method == "GET":
            messages = request.query_params.getlist(FormValueNames.ERROR_MESSAGE)
            return self._failed.get(context, messages)
        return self._failed.post(context)

    # -- dispatch --------------------------------------------------------------

    async def _dispatch(self, request: Request, step: StepHandler) -> Response:
        session, is_new = await self._load_session(request)
        context = self._build_context(request, session)

        try:
            outcome = await step(context, request)
            response = await self._render(request, outcome, session)
        except FlowError as error:
            LOGGER.debug("%s %s ended with %s", request.method, request.url.path, error)
            response = error.to_response()

        await self._save_session(session)
        if is_new and session.modified:
            response.set_cookie(
                SESSION_COOKIE,
                self._session_signer.dumps({"sid": session.session_id}),
                httponly=True,
                secure=self.secure_cookies,
                samesite="lax",
            )
        context.preferences.apply(response)
        return response

    def _build_context(self, request: Request, session: Session) -> FlowContext:
        accept = request.headers.get("accept")
        return FlowContext(
            client=self.client,
            info=self.info,
            paths=poller_paths_for(accept),
            status_codes=status_code_mapping_for(accept),
            session=PollingSession(session),
            preferences=UserPreferences(
                request.cookies.get(PREFERENCES_COOKIE),
                self._preferences_signer,
                secure=self.secure_cookies,
            ),
            authenticated_state=AuthenticatedState(session.get(SessionKeys.AUTHENTICATED_SUBJECT)),
            query_string=request.url.query,
        )

    async def _render(self, request: Request, outcome: Any, session: Session) -> Response:
        if isinstance(outcome, AuthenticationResult):
            return await self._on_authenticated(request, outcome, session)
        if isinstance(outcome, PollingResult):
            return JSONResponse(outcome.view_data(), status_code=outcome.status_code)
        if isinstance(outcome, View):
            return JSONResponse(outcome.data, status_code=outcome.status_code)
        raise TypeError(f"Flow step returned an unexpected value: {outcome!r}")

    async def _default_on_authenticated(
        self, request: Request, result: AuthenticationResult, session: Session
    ) -> Response:
        del request
        session.put(SessionKeys.AUTHENTICATED_SUBJECT, result.subject)
        if self.complete_redirect_url:
            return RedirectResponse(url=self.complete_redirect_url, status_code=303)
        return JSONResponse(result.attributes.to_payload())

    # -- session helpers -------------------------------------------------------

    async def _load_session(self, request: Request) -> tuple[Session, bool]:
        payload = self._session_signer.try_loads(request.cookies.get(SESSION_COOKIE))
        session_id = payload.get("sid") if payload else None
        if isinstance(session_id, str) and session_id:
            data = await self.session_store.get(session_id)
            if data is not None:
                return Session(session_id, data), False
            return Session(session_id), False

        return Session(secrets.token_urlsafe(32)), True

    async def _save_session(self, session: Session) -> None:
        if not session.modified:
            return
        data = session.to_dict()
        if data:
            await self.session_store.set(session.session_id, data)
        else:
            await self.session_store.delete(session.session_id)


def _form_value(form: FormData, key: str) -> str | None:
    value = form.get(key)
    if value is None or not isinstance(value, str):
        return None
    return value
