from __future__ import annotations

import html
import urllib.parse
from dataclasses import dataclass

from polling.client import AuthClient, AuthenticateError, ServiceError
from polling.constants import (
    LOGGER,
    MAX_LAUNCH_COUNT,
    EndUserMessageKeys,
    FormValueNames,
    mask_personal_number,
)
from polling.errors import BadRequestError, ErrorCode, MethodNotAllowedError, RedirectError
from polling.info import AuthenticatorInformationProvider
from polling.models import AuthenticatedState, AuthenticationResult, Transaction
from polling.paths import PollerPaths
from polling.poller import WebServicePoller
from polling.preferences import UserPreferences
from polling.reporting import ErrorReportingStrategy
from polling.results import AuthenticationCompleted, PollingResult, View
from polling.session import PollingSession
from polling.status_codes import StatusCodeMapping
from polling.statuses import AuthenticationFaultStatus

LAUNCH_SCHEME = "netid"
OBJECT_STRINGIFICATION_ARTIFACT = "[object Object]"


@dataclass
class FlowContext:
    """Everything one request of the flow works with."""

    client: AuthClient
    info: AuthenticatorInformationProvider
    paths: PollerPaths
    status_codes: StatusCodeMapping
    session: PollingSession
    preferences: UserPreferences
    authenticated_state: AuthenticatedState
    query_string: str = ""

    def poller(self) -> WebServicePoller:
        return WebServicePoller(
            self.client,
            self.paths,
            self.session,
            self.info,
            self.authenticated_state,
            self.status_codes,
        )

    def error_reporting(self) -> ErrorReportingStrategy:
        return ErrorReportingStrategy(self.info, self.session, self.paths)

    def action(self, segment: str) -> str:
        path = self.info.path(segment)
        if self.query_string:
            return f"{path}?{self.query_string}"
        return path


def parse_bool(value: str | None) -> bool:
    return (value or "").strip().lower() == "true"


# -- enter identifier ----------------------------------------------------------


@dataclass(frozen=True)
class IdentifierForm:
    user_name: str | None
    use_same_device: bool

    @classmethod
    def parse(
        cls, raw_user_name: str | None, raw_use_same_device: str | None, preferences: UserPreferences
    ) -> IdentifierForm:
        use_same_device = parse_bool(raw_use_same_device)
        user_name = (raw_user_name or "").strip() or None
        if user_name is None and not use_same_device and preferences.username:
            user_name = preferences.username
        if user_name:
            LOGGER.debug("Found username %s", mask_personal_number(user_name))
        return cls(user_name=user_name, use_same_device=use_same_device)

    @property
    def is_valid(self) -> bool:
        return self.use_same_device or bool(self.user_name)

    @property
    def identifier(self) -> str | None:
        # the same-device flow lets the app pick the identity
        return None if self.use_same_device else self.user_name

    def data_on_error(self) -> dict:
        return {
            FormValueNames.USER_NAME: self.user_name or "",
            FormValueNames.USE_SAME_DEVICE: self.use_same_device,
        }


class UnknownUserError(RuntimeError):
    pass


class EnterIdentifierLogic:
    def get(self, context: FlowContext) -> View:
        data: dict = {}
        state = context.authenticated_state
        username = state.username if state.is_authenticated else None
        if username:
            # the identifier field is hidden for a known user
            data[FormValueNames.KNOWN_USER_NAME] = True
        else:
            username = context.preferences.username

        if username is not None:
            data[FormValueNames.USERNAME] = html.escape(username)
        return View(data)

    async def post(self, context: FlowContext, form: IdentifierForm) -> None:
        if not form.is_valid:
            raise BadRequestError(
                ErrorCode.INVALID_INPUT,
                EndUserMessageKeys.USERNAME_REQUIRED,
                {FormValueNames.POST_BACK: form.data_on_error()},
            )

        identifier = form.identifier
        if identifier is not None:
            context.preferences.save_username(identifier)

        try:
            transaction = await self._authenticate(context, identifier, form.use_same_device)
        except UnknownUserError as error:
            raise BadRequestError(
                ErrorCode.INVALID_INPUT,
                EndUserMessageKeys.USERNAME_INVALID,
                form.data_on_error(),
            ) from error

        context.session.begin_transaction(transaction)

        if form.use_same_device:
            url = context.info.url(context.paths.launch)
        else:
            url = context.info.url(context.paths.wait)
        LOGGER.debug("Redirecting to %s", url)
        raise RedirectError(url)

    async def _authenticate(
        self, context: FlowContext, identifier: str | None, use_same_device: bool
    ) -> Transaction:
        service_name = context.client.service_name
        try:
            return await context.client.authenticate(identifier, use_same_device)
        except AuthenticateError as error:
            if error.status is AuthenticationFaultStatus.UNKNOWN_USER:
                LOGGER.debug("Call to %s service failed: Unknown user id", service_name)
                raise UnknownUserError() from error
            if error.status is AuthenticationFaultStatus.ALREADY_IN_PROGRESS:
                LOGGER.debug(
                    "Call to %s service failed as authentication is already in progress",
                    service_name,
                )
            else:
                LOGGER.debug("Call to %s service failed with status: %s", service_name, error)
            raise context.error_reporting().failure(error.status.message_id) from error
        except ServiceError as error:
            LOGGER.error("Call to %s service produced an unexpected error: %s", service_name, error)
            raise context.error_reporting().failure(EndUserMessageKeys.INTERNAL_ERROR) from error


# -- polling steps -------------------------------------------------------------


class LaunchLogic:
    def __init__(self, launch_scheme: str = LAUNCH_SCHEME) -> None:
        self._launch_scheme = launch_scheme

    async def get(self, context: FlowContext) -> View | PollingResult:
        session = context.session
        auto_start_token = session.auto_start_token or ""
        launch_count = session.launch_count
        if not auto_start_token:
            raise BadRequestError(ErrorCode.INVALID_INPUT, EndUserMessageKeys.AUTOSTART_TOKEN_REQUIRED)
        if not 0 <= launch_count <= MAX_LAUNCH_COUNT:
            raise BadRequestError(ErrorCode.INVALID_INPUT, EndUserMessageKeys.LAUNCH_COUNT_EXCEEDED)

        optional_fields = {
            FormValueNames.QR_START_TOKEN: session.qr_start_token,
            FormValueNames.QR_START_SECRET: session.qr_start_secret,
            FormValueNames.INIT_TIME: session.init_time,
        }

        # a transaction that completed fast skips the app launch
        poller = context.poller()
        check = await poller.check()

        if session.is_authentication_complete:
            return AuthenticationCompleted(action=poller.poll_url)

        status_code = 200
        if session.error_message is not None and check is not None:
            status_code = check.status_code

        info = context.info
        paths = context.paths
        data = {
            FormValueNames.AUTOSTART_TOKEN: urllib.parse.quote_plus(auto_start_token),
            FormValueNames.RETURN_TO_URL: urllib.parse.quote_plus(info.url(paths.launch)),
            FormValueNames.RESTART_URL: info.base_path,
            FormValueNames.CANCEL_URL: info.url(paths.cancel),
            FormValueNames.FAILURE_URL: info.url(paths.failed),
            FormValueNames.ACTION: context.action(paths.launch),
            FormValueNames.POLL_URL: poller.poll_url,
            FormValueNames.CSP_OVERRIDE_CHILD_SRC: f"child-src 'self' {self._launch_scheme}:;",
            FormValueNames.FORM_LAUNCH_COUNT: launch_count,
        }
        data.update({key: value for key, value in optional_fields.items() if value is not None})

        # a fatal check ends the transaction, leaving nothing to count against
        if session.transaction_id is not None:
            LOGGER.debug("Setting launch count to %s", launch_count + 1)
            session.increment_launch_count()
        return View(data, status_code)

    async def post(
        self, context: FlowContext, is_polling_done: bool
    ) -> AuthenticationResult | PollingResult:
        return await context.poller().get_authentication_result(is_polling_done)


class WaitLogic:
    def get(self, context: FlowContext, qr_code: str | None = None) -> View:
        context.session.require_transaction_id()

        info = context.info
        paths = context.paths
        data = {
            FormValueNames.SERVICE_MESSAGE: EndUserMessageKeys.START_APP,
            FormValueNames.ACTION: context.action(paths.wait),
            FormValueNames.RESTART_URL: info.base_path,
            FormValueNames.CANCEL_URL: info.url(paths.cancel),
            FormValueNames.FAILURE_URL: info.url(paths.failed),
            FormValueNames.POLL_URL: info.url(paths.wait),
        }
        if qr_code is not None:
            data[FormValueNames.QR_CODE] = qr_code
        return View(data)

    async def post(
        self, context: FlowContext, is_polling_done: bool, qr_code: str | None = None
    ) -> AuthenticationResult | PollingResult:
        return await context.poller().get_authentication_result(is_polling_done, qr_code)


# -- terminal steps ------------------------------------------------------------


class CancelLogic:
    def get(self, context: FlowContext) -> None:
        # the remote service cannot cancel a transaction, it expires on its own
        LOGGER.debug(
            "Reporting the transaction as cancelled; no remote action is taken as it will time out"
        )
        raise context.error_reporting().user_cancellation(EndUserMessageKeys.CANCELLED_BY_USER)

    def post(self, context: FlowContext) -> None:
        del context
        raise MethodNotAllowedError("POST")


class FailedLogic:
    def get(self, context: FlowContext, error_messages: list[str]) -> View:
        if len(error_messages) > 1:
            raise BadRequestError(
                ErrorCode.INVALID_INPUT,
                f"Invalid parameter {FormValueNames.ERROR_MESSAGE}",
            )

        message = error_messages[0] if error_messages else EndUserMessageKeys.UNKNOWN_ERROR
        if message == EndUserMessageKeys.UNKNOWN_ERROR:
            message = context.session.error_message or EndUserMessageKeys.UNKNOWN_ERROR
        if not message or message == OBJECT_STRINGIFICATION_ARTIFACT:
            message = EndUserMessageKeys.UNKNOWN_ERROR

        return View(
            {
                FormValueNames.SERVICE_MESSAGE: html.escape(message),
                FormValueNames.RESTART_URL: context.info.base_path,
            }
        )

    def post(self, context: FlowContext) -> None:
        del context
        raise MethodNotAllowedError("POST")
