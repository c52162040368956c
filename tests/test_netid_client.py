import json

import httpx
import pytest

from netid.client import NetIdAccessClient
from netid.env import Settings
from netid.http import build_http_client
from polling.client import AuthenticateError, PollError, ServiceError
from polling.models import Complete, Pending
from polling.statuses import AuthenticationFaultStatus, CollectFaultStatus, CollectStatus

SERVICE_URL = "https://netid.example.com/service"

COMPLETE_PAYLOAD = {
    "progressStatus": "COMPLETE",
    "userInfo": {"personalNumber": "199001019876", "name": "Anna Andersson"},
    "deviceInfo": {"name": "Net iD Access", "address": "192.0.2.10"},
}


def _build_client(handler, **kwargs) -> NetIdAccessClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=SERVICE_URL)
    return NetIdAccessClient(http_client, clock=lambda: 1700000000.7, **kwargs)


def _json_handler(status: int, payload, requests: list | None = None):
    async def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        return httpx.Response(status, json=payload)

    return handler


@pytest.mark.asyncio
async def test_authenticate_same_device() -> None:
    requests: list[httpx.Request] = []
    client = _build_client(_json_handler(200, {"orderRef": "A1"}, requests))

    transaction = await client.authenticate(None, True)

    assert transaction.transaction_id == "A1"
    assert transaction.auto_start_token == "A1"
    assert transaction.use_same_device is True
    assert transaction.init_time == 1700000000
    assert requests[0].method == "POST"
    assert requests[0].url.path == "/service/Authenticate"
    assert json.loads(requests[0].content) == {"personalNumber": ""}
    await client.aclose()


@pytest.mark.asyncio
async def test_authenticate_other_device_sends_personal_number() -> None:
    requests: list[httpx.Request] = []
    client = _build_client(_json_handler(200, {"orderRef": "A2"}, requests))

    transaction = await client.authenticate("199001019876", False)

    assert transaction.auto_start_token == ""
    assert json.loads(requests[0].content) == {"personalNumber": "199001019876"}
    await client.aclose()


@pytest.mark.asyncio
async def test_authenticate_fault_is_decoded() -> None:
    client = _build_client(_json_handler(500, {"faultString": "ALREADY_IN_PROGRESS"}))

    with pytest.raises(AuthenticateError) as exc_info:
        await client.authenticate("199001019876", False)

    assert exc_info.value.status is AuthenticationFaultStatus.ALREADY_IN_PROGRESS
    await client.aclose()


@pytest.mark.asyncio
async def test_authenticate_unknown_fault_is_unknown() -> None:
    client = _build_client(_json_handler(500, {"faultstring": "SOMETHING_ELSE"}))

    with pytest.raises(AuthenticateError) as exc_info:
        await client.authenticate("199001019876", False)

    assert exc_info.value.status is AuthenticationFaultStatus.UNKNOWN
    await client.aclose()


@pytest.mark.asyncio
async def test_authenticate_without_order_ref_is_service_error() -> None:
    client = _build_client(_json_handler(200, {"status": "ok"}))

    with pytest.raises(ServiceError):
        await client.authenticate(None, True)

    await client.aclose()


@pytest.mark.asyncio
async def test_poll_pending() -> None:
    requests: list[httpx.Request] = []
    client = _build_client(_json_handler(200, {"progressStatus": "USER_SIGN"}, requests))

    outcome = await client.poll("A1")

    assert outcome == Pending(CollectStatus.USER_SIGN)
    assert requests[0].url.path == "/service/Collect"
    assert json.loads(requests[0].content) == {"orderRef": "A1"}
    await client.aclose()


@pytest.mark.asyncio
async def test_poll_complete() -> None:
    client = _build_client(_json_handler(200, COMPLETE_PAYLOAD))

    outcome = await client.poll("A1")

    assert isinstance(outcome, Complete)
    assert outcome.subject == "199001019876"
    assert outcome.attributes.subject_attributes["name"] == {"formatted": "Anna Andersson"}
    await client.aclose()


@pytest.mark.asyncio
async def test_poll_complete_without_device_info_is_service_error() -> None:
    payload = {key: value for key, value in COMPLETE_PAYLOAD.items() if key != "deviceInfo"}
    client = _build_client(_json_handler(200, payload))

    with pytest.raises(ServiceError):
        await client.poll("A1")

    await client.aclose()


@pytest.mark.asyncio
async def test_poll_fault_is_decoded() -> None:
    client = _build_client(_json_handler(500, {"faultString": "EXPIRED_TRANSACTION"}))

    with pytest.raises(PollError) as exc_info:
        await client.poll("A1")

    assert exc_info.value.status is CollectFaultStatus.EXPIRED_TRANSACTION
    await client.aclose()


@pytest.mark.asyncio
async def test_poll_unknown_status_is_internal_error() -> None:
    client = _build_client(_json_handler(200, {"progressStatus": "SOMETHING_NEW"}))

    with pytest.raises(PollError) as exc_info:
        await client.poll("A1")

    assert exc_info.value.status is CollectFaultStatus.INTERNAL_ERROR
    await client.aclose()


@pytest.mark.asyncio
async def test_http_error_without_fault_is_service_error() -> None:
    client = _build_client(_json_handler(502, {"error": "bad gateway"}))

    with pytest.raises(ServiceError) as exc_info:
        await client.poll("A1")

    assert not isinstance(exc_info.value, PollError)
    await client.aclose()


@pytest.mark.asyncio
async def test_non_json_response_is_service_error() -> None:
    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>maintenance</html>")

    client = _build_client(handler)

    with pytest.raises(ServiceError):
        await client.poll("A1")

    await client.aclose()


@pytest.mark.asyncio
async def test_timeouts_are_retried() -> None:
    attempt = {"count": 0}

    async def handler(request: httpx.Request) -> httpx.Response:
        attempt["count"] += 1
        if attempt["count"] < 3:
            raise httpx.ConnectTimeout("timed out", request=request)
        return httpx.Response(200, json={"orderRef": "A1"})

    client = _build_client(handler)

    transaction = await client.authenticate(None, True)

    assert transaction.transaction_id == "A1"
    assert attempt["count"] == 3
    await client.aclose()


@pytest.mark.asyncio
async def test_timeouts_exhaust_retries() -> None:
    attempt = {"count": 0}

    async def handler(request: httpx.Request) -> httpx.Response:
        attempt["count"] += 1
        raise httpx.ReadTimeout("timed out", request=request)

    client = _build_client(handler, max_retries=1)

    with pytest.raises(ServiceError) as exc_info:
        await client.poll("A1")

    assert not isinstance(exc_info.value, PollError)
    assert attempt["count"] == 2
    await client.aclose()


@pytest.mark.asyncio
async def test_connect_errors_are_not_retried() -> None:
    attempt = {"count": 0}

    async def handler(request: httpx.Request) -> httpx.Response:
        attempt["count"] += 1
        raise httpx.ConnectError("refused", request=request)

    client = _build_client(handler)

    with pytest.raises(ServiceError):
        await client.authenticate(None, True)

    assert attempt["count"] == 1
    await client.aclose()


@pytest.mark.asyncio
async def test_undecodable_body_is_service_error() -> None:
    attempt = {"count": 0}

    async def handler(request: httpx.Request) -> httpx.Response:
        attempt["count"] += 1
        return httpx.Response(200, headers={"content-encoding": "gzip"}, content=b"not gzip")

    client = _build_client(handler)

    with pytest.raises(ServiceError) as exc_info:
        await client.poll("A1")

    assert not isinstance(exc_info.value, PollError)
    assert isinstance(exc_info.value.__cause__, httpx.DecodingError)
    assert attempt["count"] == 1
    await client.aclose()


@pytest.mark.asyncio
async def test_http_client_targets_service_url() -> None:
    requests: list[httpx.Request] = []
    settings = Settings(
        public_url="https://login.example.com",
        session_secret="secret",
        service_hostname="netid.example.com",
        service_port=8443,
        service_path="/netid-access",
    )
    http_client = build_http_client(
        settings,
        transport=httpx.MockTransport(_json_handler(200, {"orderRef": "A1"}, requests)),
    )
    client = NetIdAccessClient(http_client)

    await client.authenticate(None, True)

    assert str(requests[0].url) == "https://netid.example.com:8443/netid-access/Authenticate"
    assert http_client.timeout.connect == 3.0
    assert http_client.timeout.read == 10.0
    await client.aclose()
