"""Status and fault codes returned by the remote authentication service.

Each code carries the end-user message key it maps to. Collect faults also
carry a fatality flag: a fatal fault stops polling for good, a non-fatal one
is shown to the user while polling goes on and may still succeed.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from polling.constants import EndUserMessageKeys as Keys


@dataclass(frozen=True)
class FaultInfo:
    message_id: str
    is_fatal: bool = True


@dataclass(frozen=True)
class StatusMessages:
    same_device: str
    other_device: str


class CollectStatus(str, Enum):
    OUTSTANDING_TRANSACTION = "OUTSTANDING_TRANSACTION"
    NO_CLIENT = "NO_CLIENT"
    STARTED = "STARTED"
    USER_SIGN = "USER_SIGN"
    COMPLETE = "COMPLETE"

    @property
    def same_device_message_id(self) -> str:
        return _COLLECT_STATUS_MESSAGES[self].same_device

    @property
    def other_device_message_id(self) -> str:
        return _COLLECT_STATUS_MESSAGES[self].other_device

    def message_id(self, use_same_device: bool) -> str:
        return self.same_device_message_id if use_same_device else self.other_device_message_id

    @classmethod
    def decode(cls, value: str | None) -> CollectStatus | None:
        try:
            return cls(value)
        except ValueError:
            return None


class CollectFaultStatus(str, Enum):
    ACCESS_DENIED_RP = "ACCESS_DENIED_RP"
    INVALID_PARAMETERS = "INVALID_PARAMETERS"
    CLIENT_ERR = "CLIENT_ERR"
    CERTIFICATE_ERR = "CERTIFICATE_ERR"
    RETRY = "RETRY"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    EXPIRED_TRANSACTION = "EXPIRED_TRANSACTION"
    USER_CANCEL = "USER_CANCEL"
    CANCELLED = "CANCELLED"
    START_FAILED = "START_FAILED"

    @property
    def message_id(self) -> str:
        return _COLLECT_FAULTS[self].message_id

    @property
    def is_fatal(self) -> bool:
        return _COLLECT_FAULTS[self].is_fatal

    @classmethod
    def decode(cls, value: str | None) -> CollectFaultStatus:
        """Decode a wire value, degrading anything unknown to INTERNAL_ERROR."""
        try:
            return cls(value)
        except ValueError:
            return cls.INTERNAL_ERROR


class AuthenticationFaultStatus(str, Enum):
    UNKNOWN = "UNKNOWN"
    UNKNOWN_USER = "UNKNOWN_USER"
    INVALID_PARAMETERS = "INVALID_PARAMETERS"
    ACCESS_DENIED_RP = "ACCESS_DENIED_RP"
    SIGN_VALIDATION_FAILED = "SIGN_VALIDATION_FAILED"
    RETRY = "RETRY"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    ALREADY_IN_PROGRESS = "ALREADY_IN_PROGRESS"
    USER_BLOCKED = "USER_BLOCKED"

    @property
    def message_id(self) -> str:
        return _AUTHENTICATION_FAULT_MESSAGES[self]

    @classmethod
    def decode(cls, value: str | None) -> AuthenticationFaultStatus:
        try:
            return cls(value)
        except ValueError:
            return cls.UNKNOWN


_COLLECT_STATUS_MESSAGES = {
    CollectStatus.OUTSTANDING_TRANSACTION: StatusMessages(
        Keys.OUTSTANDING_TRANSACTION, Keys.START_APP
    ),
    CollectStatus.NO_CLIENT: StatusMessages(Keys.START_APP, Keys.START_APP),
    CollectStatus.STARTED: StatusMessages(Keys.NO_APP_TRY_OTHER_DEVICE, Keys.NO_APP),
    CollectStatus.USER_SIGN: StatusMessages(Keys.USER_SIGN, Keys.USER_SIGN),
    CollectStatus.COMPLETE: StatusMessages("", ""),
}

_COLLECT_FAULTS = {
    CollectFaultStatus.ACCESS_DENIED_RP: FaultInfo(Keys.ACCESS_DENIED_RP, is_fatal=False),
    CollectFaultStatus.INVALID_PARAMETERS: FaultInfo(Keys.INVALID_PARAMETERS, is_fatal=False),
    CollectFaultStatus.CLIENT_ERR: FaultInfo(Keys.CLIENT_ERROR),
    CollectFaultStatus.CERTIFICATE_ERR: FaultInfo(Keys.CERTIFICATE_ERROR),
    CollectFaultStatus.RETRY: FaultInfo(Keys.INTERNAL_ERROR),
    CollectFaultStatus.INTERNAL_ERROR: FaultInfo(Keys.INTERNAL_ERROR),
    CollectFaultStatus.EXPIRED_TRANSACTION: FaultInfo(Keys.EXPIRED_TRANSACTION),
    CollectFaultStatus.USER_CANCEL: FaultInfo(Keys.USER_CANCELLED),
    CollectFaultStatus.CANCELLED: FaultInfo(Keys.CANCELLED),
    CollectFaultStatus.START_FAILED: FaultInfo(Keys.START_FAILED),
}

_AUTHENTICATION_FAULT_MESSAGES = {
    AuthenticationFaultStatus.UNKNOWN: Keys.UNKNOWN_ERROR,
    AuthenticationFaultStatus.UNKNOWN_USER: Keys.UNKNOWN_PERSONAL_NUMBER,
    AuthenticationFaultStatus.INVALID_PARAMETERS: Keys.INVALID_PARAMETERS,
    AuthenticationFaultStatus.ACCESS_DENIED_RP: Keys.ACCESS_DENIED_RP,
    AuthenticationFaultStatus.SIGN_VALIDATION_FAILED: Keys.INTERNAL_ERROR,
    AuthenticationFaultStatus.RETRY: Keys.INTERNAL_ERROR,
    AuthenticationFaultStatus.INTERNAL_ERROR: Keys.INTERNAL_ERROR,
    AuthenticationFaultStatus.ALREADY_IN_PROGRESS: Keys.IN_PROGRESS,
    AuthenticationFaultStatus.USER_BLOCKED: Keys.USER_BLOCKED,
}
