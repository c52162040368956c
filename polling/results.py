from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from polling.constants import FormValueNames
from polling.statuses import CollectFaultStatus


@dataclass(frozen=True)
class View:
    """What a flow step renders: view data plus the HTTP status to send."""

    data: dict[str, Any] = field(default_factory=dict)
    status_code: int = 200


class PollingResult:
    stop_polling = False

    def view_data(self) -> dict[str, Any]:
        raise NotImplementedError


@dataclass(frozen=True)
class PendingResult(PollingResult):
    message_id: str
    poll_url: str
    cancel_url: str
    status_code: int
    qr_code: str | None = None

    def view_data(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "stopPolling": False,
            "message": {"userMessage": self.message_id or ""},
            "pollingUrl": self.poll_url,
            "cancelUrl": self.cancel_url,
        }
        if self.qr_code:
            data[FormValueNames.QR_CODE] = self.qr_code
        return data


@dataclass(frozen=True)
class FailedResult(PollingResult):
    redirect_url: str
    poll_url: str
    cancel_url: str
    message_id: str
    fault_status: CollectFaultStatus | None
    status_code: int

    @property
    def stop_polling(self) -> bool:  # type: ignore[override]
        return self.fault_status is not None and self.fault_status.is_fatal

    def view_data(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "stopPolling": self.stop_polling,
            "message": {
                "redirectUrl": self.redirect_url,
                "message": self.message_id,
            },
            "pollingUrl": self.poll_url,
            "cancelUrl": self.cancel_url,
            "_systemErrorMessage": self.message_id,
        }
        if self.fault_status is not None:
            data["_collectFaultStatus"] = self.fault_status.value
        return data


@dataclass(frozen=True)
class SuccessResult(PollingResult):
    finish_off_url: str
    status_code: int
    stop_polling = True

    def view_data(self) -> dict[str, Any]:
        return {"stopPolling": True, "finishOffUrl": self.finish_off_url}


@dataclass(frozen=True)
class AuthenticationIncomplete(PollingResult):
    """The client posted a finished poll while the transaction was not complete."""

    restart_url: str
    message_id: str
    status_code: int = 400

    def view_data(self) -> dict[str, Any]:
        return {
            FormValueNames.RESTART_URL: self.restart_url,
            "errors": [self.message_id],
        }


@dataclass(frozen=True)
class AuthenticationCompleted(PollingResult):
    action: str
    status_code: int = 200

    def view_data(self) -> dict[str, Any]:
        return {FormValueNames.ACTION: self.action, FormValueNames.AUTHN_COMPLETE: True}
