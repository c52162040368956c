from __future__ import annotations

import time
from typing import Callable

import httpx

from polling.client import (
    MAX_RETRY_COUNT,
    AuthClient,
    AuthenticateError,
    PollError,
    ServiceError,
    call_with_retry,
)
from polling.constants import mask_personal_number
from polling.models import Complete, Pending, PollOutcome, Transaction
from polling.statuses import AuthenticationFaultStatus, CollectFaultStatus, CollectStatus

from .attributes import AttributeParseError, parse_collect_attributes
from .constants import CONNECT_TIMEOUT_SECONDS, LOGGER, REQUEST_TIMEOUT_SECONDS, SERVICE_NAME


class ServiceFault(ServiceError):
    """The service answered with a protocol fault instead of a result."""

    def __init__(self, fault_string: str, message: str | None = None) -> None:
        super().__init__(message or f"Service fault: {fault_string}")
        self.fault_string = fault_string


def _fault_string(response: httpx.Response) -> str | None:
    try:
        payload = response.json()
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    fault = payload.get("faultString") or payload.get("faultstring")
    return fault if isinstance(fault, str) and fault else None


class NetIdAccessClient(AuthClient):
    """Client for the Net iD Access service.

    Both operations are JSON POSTs against the service endpoint:
    ``Authenticate`` takes a personal number and returns an ``orderRef``,
    ``Collect`` takes the ``orderRef`` and returns its ``progressStatus``
    together with user and device info once complete. A fault comes back as
    an error status with a ``faultString`` body naming the fault.
    """

    service_name = SERVICE_NAME

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        max_retries: int = MAX_RETRY_COUNT,
        round_trip_timeout: float = CONNECT_TIMEOUT_SECONDS + REQUEST_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._http = http_client
        self._max_retries = max_retries
        self._round_trip_timeout = round_trip_timeout
        self._clock = clock

    async def authenticate(
        self, user_identifier: str | None, use_same_device: bool
    ) -> Transaction:
        LOGGER.debug(
            "Starting authentication for %s (same device: %s)",
            mask_personal_number(user_identifier) or "<none>",
            use_same_device,
        )
        try:
            payload = await self._call(
                "Authenticate",
                {"personalNumber": user_identifier or ""},
                description="Failed to start authentication",
            )
        except ServiceFault as fault:
            status = AuthenticationFaultStatus.decode(fault.fault_string)
            raise AuthenticateError(status, str(fault)) from fault

        transaction_id = payload.get("orderRef")
        if not isinstance(transaction_id, str) or not transaction_id:
            raise ServiceError("Failed to start authentication: response has no orderRef")

        return Transaction(
            transaction_id=transaction_id,
            auto_start_token=transaction_id if use_same_device else "",
            use_same_device=use_same_device,
            init_time=int(self._clock()),
        )

    async def poll(self, transaction_id: str) -> PollOutcome:
        try:
            payload = await self._call(
                "Collect",
                {"orderRef": transaction_id},
                description="Failed to poll for status",
            )
        except ServiceFault as fault:
            raise PollError(CollectFaultStatus.decode(fault.fault_string), str(fault)) from fault

        progress_status = payload.get("progressStatus")
        status = CollectStatus.decode(progress_status)
        if status is None:
            raise PollError(CollectFaultStatus.decode(progress_status), "Unsuccessful poll")

        if status is not CollectStatus.COMPLETE:
            return Pending(status)

        try:
            attributes = parse_collect_attributes(payload)
        except AttributeParseError as error:
            raise ServiceError(str(error)) from error
        return Complete(attributes)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _call(self, operation: str, body: dict, *, description: str) -> dict:
        async def send() -> httpx.Response:
            return await self._http.post(f"/{operation}", json=body)

        response = await call_with_retry(
            send,
            description=description,
            max_retries=self._max_retries,
            timeout=self._round_trip_timeout,
            logger=LOGGER,
        )

        if response.status_code >= 400:
            fault_string = _fault_string(response)
            if fault_string is not None:
                raise ServiceFault(fault_string)
            raise ServiceError(f"{description}: service returned HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as error:
            raise ServiceError(f"{description}: response is not JSON") from error
        if not isinstance(payload, dict):
            raise ServiceError(f"{description}: expected a JSON object")
        return payload
