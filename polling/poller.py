from __future__ import annotations

from polling.client import AuthClient, PollError, ServiceError
from polling.constants import LOGGER, EndUserMessageKeys, mask_personal_number
from polling.errors import BadRequestError, ErrorCode, InternalServerError
from polling.info import AuthenticatorInformationProvider
from polling.models import (
    AuthenticatedState,
    AuthenticationAttributes,
    AuthenticationResult,
    Complete,
    Failed,
    Pending,
)
from polling.paths import PollerPaths
from polling.results import (
    AuthenticationIncomplete,
    FailedResult,
    PendingResult,
    PollingResult,
    SuccessResult,
)
from polling.session import PollingSession
from polling.status_codes import StatusCodeMapping
from polling.statuses import CollectFaultStatus


class WebServicePoller:
    """Runs one poll tick against the remote service for the session's transaction.

    The poller never loops: each call polls at most once and reports the
    outcome as a ``PollingResult`` whose status code comes from the active
    ``StatusCodeMapping``. Once the session is marked complete, the next call
    consumes the stored result and returns it as an ``AuthenticationResult``.
    """

    def __init__(
        self,
        client: AuthClient,
        paths: PollerPaths,
        session: PollingSession,
        info: AuthenticatorInformationProvider,
        authenticated_state: AuthenticatedState,
        status_codes: StatusCodeMapping,
    ) -> None:
        self._client = client
        self._paths = paths
        self._session = session
        self._info = info
        self._authenticated_state = authenticated_state
        self._status_codes = status_codes

    @property
    def poll_url(self) -> str:
        return self._info.url(self._paths.wait)

    @property
    def cancel_url(self) -> str:
        return self._info.url(self._paths.cancel)

    @property
    def failed_url(self) -> str:
        return self._info.url(self._paths.failed)

    async def get_authentication_result(
        self, is_polling_done: bool, qr_code: str | None = None
    ) -> AuthenticationResult | PollingResult:
        transaction_id = self._session.transaction_id
        if not transaction_id:
            LOGGER.debug("Tried to poll without a transaction id.")
            raise BadRequestError(ErrorCode.MISSING_PARAMETERS, "No transaction is in progress.")

        if self._session.is_authentication_complete:
            LOGGER.debug("Getting authenticated user from session")
            return self._consume_result()

        if is_polling_done:
            LOGGER.info(
                "Authentication is not complete, but the client posted that polling is done. "
                "This could be an attempt to subvert the flow or a client development error."
            )
            return AuthenticationIncomplete(
                restart_url=self._info.base_path,
                message_id=EndUserMessageKeys.AUTHENTICATION_FAILED,
            )

        return await self._poll(transaction_id, qr_code)

    async def check(self) -> PollingResult | None:
        """Poll once without consuming a completed result.

        Returns None when the session is already complete and there is
        nothing left to poll.
        """
        transaction_id = self._session.transaction_id
        if not transaction_id:
            raise BadRequestError(ErrorCode.MISSING_PARAMETERS, "No transaction is in progress.")
        if self._session.is_authentication_complete:
            return None
        return await self._poll(transaction_id, None)

    async def _poll(self, transaction_id: str, qr_code: str | None) -> PollingResult:
        LOGGER.debug("Polling for authentication status of transaction %s", transaction_id)

        try:
            outcome = await self._client.poll(transaction_id)
        except PollError as error:
            LOGGER.debug("Polling failed with status %s", error.status.value)
            return self._poll_failed(error.status)
        except ServiceError as error:
            LOGGER.debug("Polling failed with unexpected error: %s", error)
            return self._poll_failed(None)

        if isinstance(outcome, Failed):
            LOGGER.debug("Polling returned fault %s", outcome.fault_status)
            return self._poll_failed(outcome.fault_status)

        if isinstance(outcome, Complete):
            LOGGER.debug("Indicating to poller that authentication has completed")
            self._session.record_completion(outcome.attributes)
            return SuccessResult(
                finish_off_url=self.poll_url,
                status_code=self._status_codes.polling_done(),
            )

        if isinstance(outcome, Pending):
            use_same_device = self._session.use_same_device
            message_id = outcome.status.message_id(use_same_device)
            LOGGER.debug(
                "Mapped collect status %s to message id %s%s using same device",
                outcome.status.value,
                message_id,
                "" if use_same_device else " not",
            )
            return PendingResult(
                message_id=message_id,
                poll_url=self.poll_url,
                cancel_url=self.cancel_url,
                status_code=self._status_codes.keep_polling(),
                qr_code=qr_code,
            )

        raise TypeError(f"Unexpected poll outcome: {outcome!r}")

    def _poll_failed(self, fault_status: CollectFaultStatus | None) -> FailedResult:
        failed = Failed(fault_status)
        LOGGER.debug("Saving error message: %s", failed.message_id)
        if failed.is_fatal:
            self._session.end_transaction(failed.message_id)
        else:
            self._session.record_error(failed.message_id)

        return FailedResult(
            redirect_url=self.failed_url,
            poll_url=self.poll_url,
            cancel_url=self.cancel_url,
            message_id=failed.message_id,
            fault_status=fault_status,
            status_code=self._status_codes.polling_failure(failed.is_fatal),
        )

    def _consume_result(self) -> AuthenticationResult:
        stored = self._session.result_attributes
        if stored is None:
            LOGGER.info("Session is marked complete but holds no authentication attributes")
            raise InternalServerError(ErrorCode.INVALID_SERVER_STATE)

        subject = self._session.result_subject
        self._session.consume_result()
        return AuthenticationResult(self._with_collected_subject(stored, subject))

    def _with_collected_subject(
        self, attributes: AuthenticationAttributes, subject: str | None
    ) -> AuthenticationAttributes:
        # the freshly collected subject wins over any earlier authenticated state
        if not subject:
            LOGGER.warning("Could not find personal number in authentication service response")
            raise InternalServerError(ErrorCode.EXTERNAL_SERVICE_ERROR)

        state = self._authenticated_state
        if state.is_authenticated and state.username != subject:
            LOGGER.debug(
                "Authenticated subject '%s' does not match authenticated state subject '%s'",
                mask_personal_number(subject),
                mask_personal_number(state.username),
            )

        LOGGER.debug("User %s authenticated", mask_personal_number(subject))
        return attributes.with_subject(subject)
