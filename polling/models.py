from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from polling.constants import EndUserMessageKeys
from polling.statuses import CollectFaultStatus, CollectStatus


@dataclass(frozen=True)
class Transaction:
    transaction_id: str
    auto_start_token: str
    use_same_device: bool
    init_time: int
    qr_start_token: str | None = None
    qr_start_secret: str | None = None


@dataclass(frozen=True)
class AuthenticationAttributes:
    subject: str
    subject_attributes: dict[str, Any] = field(default_factory=dict)
    context_attributes: dict[str, Any] = field(default_factory=dict)

    def with_subject(self, subject: str) -> AuthenticationAttributes:
        if subject == self.subject:
            return self
        return AuthenticationAttributes(
            subject=subject,
            subject_attributes={**self.subject_attributes, "subject": subject},
            context_attributes=self.context_attributes,
        )

    def to_payload(self) -> dict:
        return {
            "subject": self.subject,
            "subject_attributes": dict(self.subject_attributes),
            "context_attributes": dict(self.context_attributes),
        }

    @classmethod
    def from_payload(cls, payload: dict) -> AuthenticationAttributes:
        subject = payload.get("subject")
        if not isinstance(subject, str) or not subject:
            raise RuntimeError("Stored authentication attributes are missing a subject.")
        return cls(
            subject=subject,
            subject_attributes=dict(payload.get("subject_attributes") or {}),
            context_attributes=dict(payload.get("context_attributes") or {}),
        )


@dataclass(frozen=True)
class AuthenticationResult:
    attributes: AuthenticationAttributes

    @property
    def subject(self) -> str:
        return self.attributes.subject


@dataclass(frozen=True)
class AuthenticatedState:
    username: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.username)


# -- poll outcomes -------------------------------------------------------------


@dataclass(frozen=True)
class Pending:
    status: CollectStatus

    @property
    def same_device_message(self) -> str:
        return self.status.same_device_message_id

    @property
    def other_device_message(self) -> str:
        return self.status.other_device_message_id


@dataclass(frozen=True)
class Complete:
    attributes: AuthenticationAttributes

    @property
    def subject(self) -> str:
        return self.attributes.subject


@dataclass(frozen=True)
class Failed:
    fault_status: CollectFaultStatus | None

    @property
    def is_fatal(self) -> bool:
        return self.fault_status is not None and self.fault_status.is_fatal

    @property
    def message_id(self) -> str:
        if self.fault_status is None:
            return EndUserMessageKeys.GENERAL_ERROR
        return self.fault_status.message_id


PollOutcome = Union[Pending, Complete, Failed]
