from __future__ import annotations

import base64
import hashlib
import hmac
import json
import time
from typing import Any, Callable

from polling.constants import LOGGER


class BadSignature(RuntimeError):
    """A signed cookie value could not be verified."""


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def _b64decode(text: str) -> bytes:
    return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))


class CookieSigner:
    """Signs the small JSON payloads carried in cookies.

    Each purpose derives its own key from the shared secret, so a value
    signed for one cookie never verifies as another. Signed values carry
    the time they were issued, checked against ``max_age`` on load.
    """

    def __init__(
        self,
        secret: str,
        purpose: str,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.purpose = purpose
        self._key = hashlib.sha256(f"netid:{purpose}:{secret}".encode()).digest()
        self._clock = clock

    def dumps(self, payload: dict[str, Any]) -> str:
        envelope = {"p": payload, "t": int(self._clock())}
        body = json.dumps(envelope, separators=(",", ":"), sort_keys=True).encode()
        return f"{_b64encode(body)}.{_b64encode(self._sign(body))}"

    def loads(self, value: str, max_age: int | None = None) -> dict[str, Any]:
        body_b64, _, signature_b64 = value.partition(".")
        if not body_b64 or not signature_b64:
            raise BadSignature(f"{self.purpose} cookie is not a signed value.")
        try:
            body = _b64decode(body_b64)
            signature = _b64decode(signature_b64)
        except ValueError as error:
            raise BadSignature(f"{self.purpose} cookie is not valid base64.") from error

        if not hmac.compare_digest(self._sign(body), signature):
            raise BadSignature(f"{self.purpose} cookie signature does not match.")

        envelope = json.loads(body)
        payload = envelope.get("p") if isinstance(envelope, dict) else None
        if not isinstance(payload, dict):
            raise BadSignature(f"{self.purpose} cookie holds no payload.")
        if max_age is not None and self._clock() - envelope.get("t", 0) > max_age:
            raise BadSignature(f"{self.purpose} cookie is older than {max_age} seconds.")
        return payload

    def try_loads(self, value: str | None, max_age: int | None = None) -> dict[str, Any] | None:
        if not value:
            return None
        try:
            return self.loads(value, max_age)
        except BadSignature as error:
            LOGGER.debug("Ignoring %s", error)
            return None

    def _sign(self, body: bytes) -> bytes:
        return hmac.new(self._key, body, hashlib.sha256).digest()
