from __future__ import annotations

from polling.constants import LOGGER
from polling.errors import BadRequestError, ErrorCode, FlowError, InternalServerError, RedirectError
from polling.info import AuthenticatorInformationProvider
from polling.paths import FailureMode, PollerPaths
from polling.session import PollingSession


class ErrorReportingStrategy:
    def __init__(
        self,
        info: AuthenticatorInformationProvider,
        session: PollingSession,
        paths: PollerPaths,
    ) -> None:
        self._info = info
        self._session = session
        self._paths = paths

    def user_cancellation(self, message_id: str) -> FlowError:
        # a cancelled flow always lands on the failed page, whatever the failure mode
        return self._redirect_to_failed(message_id)

    def failure(self, message_id: str) -> FlowError:
        if self._paths.failure_mode is FailureMode.REDIRECT_CLIENT:
            return self._redirect_to_failed(message_id)
        if self._paths.failure_mode is FailureMode.PROBLEM_JSON:
            return BadRequestError(ErrorCode.GENERIC_ERROR, message_id)

        LOGGER.warning("Failure mode not covered: %s", self._paths.failure_mode)
        return InternalServerError(ErrorCode.INVALID_SERVER_STATE)

    def _redirect_to_failed(self, message_id: str) -> RedirectError:
        url = self._info.url(self._paths.failed)
        self._session.record_error(message_id)
        LOGGER.debug("Redirecting to %s", url)
        return RedirectError(url)
