from __future__ import annotations

from starlette.responses import Response

from polling.cookie_signing import CookieSigner

PREFERENCES_COOKIE = "netid_preferences"
PREFERENCES_MAX_AGE_SECONDS = 365 * 24 * 3600


class UserPreferences:
    """Username remembered between visits in a signed cookie."""

    def __init__(self, cookie_value: str | None, signer: CookieSigner, *, secure: bool = True) -> None:
        self._signer = signer
        self._secure = secure
        self._data = signer.try_loads(cookie_value, max_age=PREFERENCES_MAX_AGE_SECONDS) or {}
        self._changed = False

    @property
    def username(self) -> str | None:
        value = self._data.get("username")
        return value if isinstance(value, str) and value else None

    def save_username(self, username: str) -> None:
        if self._data.get("username") == username:
            return
        self._data["username"] = username
        self._changed = True

    def apply(self, response: Response) -> None:
        if not self._changed:
            return
        response.set_cookie(
            PREFERENCES_COOKIE,
            self._signer.dumps(self._data),
            max_age=PREFERENCES_MAX_AGE_SECONDS,
            httponly=True,
            secure=self._secure,
            samesite="lax",
        )
