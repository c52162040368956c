from __future__ import annotations

import json
import os
import tempfile
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from polling.constants import LOGGER, SessionKeys
from polling.errors import BadRequestError, ErrorCode
from polling.models import AuthenticationAttributes, Transaction

SESSION_TTL_SECONDS = 3600


@dataclass
class StoredSession:
    data: dict[str, Any]
    updated_at: float

    def is_stale(self, cutoff: float) -> bool:
        return self.updated_at < cutoff

    def to_payload(self) -> dict[str, Any]:
        return {"data": self.data, "updated_at": self.updated_at}

    @classmethod
    def from_payload(cls, payload: Any) -> StoredSession:
        if not isinstance(payload, dict) or not isinstance(payload.get("data"), dict):
            raise RuntimeError("Session store entry is invalid; expected data and updated_at.")
        return cls(data=payload["data"], updated_at=float(payload.get("updated_at", 0)))


class SessionStore(ABC):
    """Server-side session data keyed by the id carried in the session cookie.

    Sessions not written for ``ttl_seconds`` are treated as gone and are
    dropped the next time any session is written.
    """

    def __init__(
        self,
        ttl_seconds: int = SESSION_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    @abstractmethod
    async def get(self, session_id: str) -> dict[str, Any] | None:
        raise NotImplementedError

    @abstractmethod
    async def set(self, session_id: str, data: dict[str, Any]) -> None:
        raise NotImplementedError

    @abstractmethod
    async def delete(self, session_id: str) -> None:
        raise NotImplementedError

    def _cutoff(self) -> float:
        return self._clock() - self.ttl_seconds

    def _stamp(self, data: dict[str, Any]) -> StoredSession:
        return StoredSession(data=dict(data), updated_at=self._clock())

    def _drop_stale(self, sessions: dict[str, StoredSession]) -> int:
        cutoff = self._cutoff()
        stale = [session_id for session_id, stored in sessions.items() if stored.is_stale(cutoff)]
        for session_id in stale:
            del sessions[session_id]
        if stale:
            LOGGER.debug("Dropped %s stale sessions", len(stale))
        return len(stale)


class MemorySessionStore(SessionStore):
    def __init__(
        self,
        ttl_seconds: int = SESSION_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(ttl_seconds, clock)
        self._sessions: dict[str, StoredSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    async def get(self, session_id: str) -> dict[str, Any] | None:
        stored = self._sessions.get(session_id)
        if stored is None or stored.is_stale(self._cutoff()):
            return None
        return dict(stored.data)

    async def set(self, session_id: str, data: dict[str, Any]) -> None:
        self._drop_stale(self._sessions)
        self._sessions[session_id] = self._stamp(data)

    async def delete(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)


class FileSessionStore(SessionStore):
    """Sessions kept in one JSON document: ``{"sessions": {id: {"data", "updated_at"}}}``."""

    def __init__(
        self,
        path: str | Path = ".sessions.json",
        ttl_seconds: int = SESSION_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__(ttl_seconds, clock)
        self._path = Path(path)

    async def get(self, session_id: str) -> dict[str, Any] | None:
        stored = self._load().get(session_id)
        if stored is None or stored.is_stale(self._cutoff()):
            return None
        return stored.data

    async def set(self, session_id: str, data: dict[str, Any]) -> None:
        sessions = self._load()
        self._drop_stale(sessions)
        sessions[session_id] = self._stamp(data)
        self._save(sessions)

    async def delete(self, session_id: str) -> None:
        sessions = self._load()
        removed = sessions.pop(session_id, None) is not None
        if self._drop_stale(sessions) or removed:
            self._save(sessions)

    def _load(self) -> dict[str, StoredSession]:
        if not self._path.exists():
            return {}

        document = json.loads(self._path.read_text(encoding="utf-8"))
        if not isinstance(document, dict) or not isinstance(document.get("sessions"), dict):
            raise RuntimeError("Session store file is invalid; expected a sessions object.")
        return {
            session_id: StoredSession.from_payload(payload)
            for session_id, payload in document["sessions"].items()
        }

    def _save(self, sessions: dict[str, StoredSession]) -> None:
        document = {
            "sessions": {
                session_id: stored.to_payload() for session_id, stored in sessions.items()
            }
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)

        # replace the whole file so a reader never sees a partial document
        fd, tmp_name = tempfile.mkstemp(prefix=f"{self._path.name}.", suffix=".tmp", dir=self._path.parent)
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(document, handle, sort_keys=True)
            os.replace(tmp_path, self._path)
        finally:
            tmp_path.unlink(missing_ok=True)


class Session:
    """Key/value attributes of one end-user session, loaded for one request."""

    def __init__(self, session_id: str, data: dict[str, Any] | None = None) -> None:
        self.session_id = session_id
        self._data: dict[str, Any] = dict(data or {})
        self.modified = False

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def put(self, key: str, value: Any) -> None:
        self._data[key] = value
        self.modified = True

    def remove(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self.modified = True

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def to_dict(self) -> dict[str, Any]:
        return dict(self._data)


class PollingSession:
    """Typed view over the session keys used by one polling flow.

    Starting a transaction and consuming its result are the only ways the
    transaction keys are written or cleared as a group.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    @property
    def session(self) -> Session:
        return self._session

    @property
    def transaction_id(self) -> str | None:
        return self._session.get(SessionKeys.ORDER_REF) or None

    @property
    def use_same_device(self) -> bool:
        return bool(self._session.get(SessionKeys.USE_SAME_DEVICE, False))

    @property
    def is_authentication_complete(self) -> bool:
        return bool(self._session.get(SessionKeys.AUTHENTICATION_STATE, False))

    @property
    def auto_start_token(self) -> str | None:
        return self._session.get(SessionKeys.AUTOSTART_TOKEN)

    @property
    def qr_start_token(self) -> str | None:
        return self._session.get(SessionKeys.QR_START_TOKEN)

    @property
    def qr_start_secret(self) -> str | None:
        return self._session.get(SessionKeys.QR_START_SECRET)

    @property
    def init_time(self) -> int | None:
        return self._session.get(SessionKeys.INIT_TIME)

    @property
    def launch_count(self) -> int:
        return int(self._session.get(SessionKeys.SESSION_LAUNCH_COUNT, 0))

    @property
    def error_message(self) -> str | None:
        return self._session.get(SessionKeys.ERROR_MESSAGE)

    @property
    def result_subject(self) -> str | None:
        return self._session.get(SessionKeys.RESULT_SUBJECT)

    @property
    def result_attributes(self) -> AuthenticationAttributes | None:
        payload = self._session.get(SessionKeys.RESULT_ATTRIBUTES)
        if payload is None:
            return None
        return AuthenticationAttributes.from_payload(payload)

    def require_transaction_id(self) -> str:
        transaction_id = self.transaction_id
        if not transaction_id:
            raise BadRequestError(
                ErrorCode.MISSING_PARAMETERS,
                "No transaction is in progress for this session.",
            )
        return transaction_id

    def begin_transaction(self, transaction: Transaction) -> None:
        for key in SessionKeys.ALL:
            self._session.remove(key)

        self._session.put(SessionKeys.ORDER_REF, transaction.transaction_id)
        self._session.put(SessionKeys.AUTOSTART_TOKEN, transaction.auto_start_token)
        self._session.put(SessionKeys.USE_SAME_DEVICE, transaction.use_same_device)
        self._session.put(SessionKeys.INIT_TIME, transaction.init_time)
        if transaction.qr_start_token is not None:
            self._session.put(SessionKeys.QR_START_TOKEN, transaction.qr_start_token)
        if transaction.qr_start_secret is not None:
            self._session.put(SessionKeys.QR_START_SECRET, transaction.qr_start_secret)

    def record_completion(self, attributes: AuthenticationAttributes) -> None:
        self._session.put(SessionKeys.AUTHENTICATION_STATE, True)
        self._session.put(SessionKeys.RESULT_SUBJECT, attributes.subject)
        self._session.put(SessionKeys.RESULT_ATTRIBUTES, attributes.to_payload())
        self._session.remove(SessionKeys.ERROR_MESSAGE)

    def record_error(self, message_id: str) -> None:
        self._session.put(SessionKeys.ERROR_MESSAGE, message_id)

    def end_transaction(self, message_id: str) -> None:
        """Drop the transaction after a fatal failure, keeping only its error message."""
        for key in SessionKeys.ALL:
            self._session.remove(key)
        self._session.put(SessionKeys.ERROR_MESSAGE, message_id)
        LOGGER.debug("Ended transaction in session %s", self._session.session_id)

    def increment_launch_count(self) -> int:
        count = self.launch_count + 1
        self._session.put(SessionKeys.SESSION_LAUNCH_COUNT, count)
        return count

    def consume_result(self) -> AuthenticationAttributes | None:
        attributes = self.result_attributes
        for key in SessionKeys.ALL:
            self._session.remove(key)
        LOGGER.debug("Cleared polling state from session %s", self._session.session_id)
        return attributes
