from __future__ import annotations


class AuthenticatorInformationProvider:
    def __init__(self, public_url: str, base_path: str) -> None:
        self.public_url = public_url.rstrip("/")
        self.base_path = "/" + base_path.strip("/")

    def base_uri(self) -> str:
        return f"{self.public_url}{self.base_path}"

    def url(self, segment: str = "") -> str:
        segment = segment.strip("/")
        if not segment:
            return self.base_uri()
        return f"{self.base_uri()}/{segment}"

    def path(self, segment: str = "") -> str:
        segment = segment.strip("/")
        if not segment:
            return self.base_path
        return f"{self.base_path}/{segment}"
