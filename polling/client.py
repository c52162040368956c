from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, TypeVar

import httpx

from polling.constants import LOGGER
from polling.models import PollOutcome, Transaction
from polling.statuses import AuthenticationFaultStatus, CollectFaultStatus

MAX_RETRY_COUNT = 2
TIMEOUT_ERRORS = (httpx.TimeoutException, asyncio.TimeoutError)

T = TypeVar("T")


class ServiceError(RuntimeError):
    """The remote service could not be reached or answered unexpectedly."""


class AuthenticateError(ServiceError):
    def __init__(self, status: AuthenticationFaultStatus, message: str | None = None) -> None:
        super().__init__(message or f"Authentication failed with status {status.value}.")
        self.status = status


class PollError(ServiceError):
    def __init__(self, status: CollectFaultStatus, message: str | None = None) -> None:
        super().__init__(message or f"Polling failed with status {status.value}.")
        self.status = status


class AuthClient(ABC):
    service_name = "authentication"

    @abstractmethod
    async def authenticate(
        self, user_identifier: str | None, use_same_device: bool
    ) -> Transaction:
        raise NotImplementedError

    @abstractmethod
    async def poll(self, transaction_id: str) -> PollOutcome:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


async def call_with_retry(
    call: Callable[[], Awaitable[T]],
    *,
    description: str,
    max_retries: int = MAX_RETRY_COUNT,
    timeout: float | None = None,
    logger: logging.Logger | None = None,
) -> T:
    """Run ``call``, retrying immediately when it times out.

    Only timeouts are retried. Any other httpx error, such as a refused
    connection or an undecodable body, and a timeout once the retries are
    used up, is raised as ``ServiceError``.
    """
    log = logger or LOGGER
    max_retries = max(0, max_retries)
    retries = 0

    while True:
        try:
            if timeout is None:
                return await call()
            return await asyncio.wait_for(call(), timeout)
        except TIMEOUT_ERRORS as error:
            error_message = str(error) or "No additional details"
            if retries < max_retries:
                log.info(
                    "Call to remote service timed out. Error was %s. Retrying (attempts: %s, retries: %s)",
                    error_message,
                    retries + 1,
                    retries,
                )
                retries += 1
                continue

            log.warning(
                "Web service call failed. Web service returned the following error: %s. retries: %s.",
                error_message,
                retries,
            )
            raise ServiceError(f"{description}: {error_message}") from error
        except httpx.HTTPError as error:
            log.warning(
                "Web service call failed. Web service returned the following error: %s. retries: %s.",
                str(error) or "No additional details",
                retries,
            )
            raise ServiceError(f"{description}: {error}") from error
