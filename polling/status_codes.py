"""Translate poll outcomes into HTTP status codes.

Browser clients built against the first version of the flow expect the
legacy codes and infer failure from the redirect URL rather than from the
status. Hypermedia clients that accept the auth API media type get
semantic codes.
"""

from __future__ import annotations

from dataclasses import dataclass

from starlette import status

from polling.constants import AUTH_API_ACCEPT_TYPE


@dataclass(frozen=True)
class StatusCodeMapping:
    name: str
    keep_polling_code: int
    fatal_failure_code: int
    non_fatal_failure_code: int
    done_code: int

    def keep_polling(self) -> int:
        return self.keep_polling_code

    def polling_failure(self, is_fatal: bool) -> int:
        return self.fatal_failure_code if is_fatal else self.non_fatal_failure_code

    def polling_done(self) -> int:
        return self.done_code


LEGACY_MAPPING = StatusCodeMapping(
    name="legacy",
    keep_polling_code=status.HTTP_201_CREATED,
    fatal_failure_code=status.HTTP_201_CREATED,
    non_fatal_failure_code=status.HTTP_201_CREATED,
    done_code=status.HTTP_202_ACCEPTED,
)

SEMANTIC_MAPPING = StatusCodeMapping(
    name="semantic",
    keep_polling_code=status.HTTP_200_OK,
    fatal_failure_code=status.HTTP_400_BAD_REQUEST,
    non_fatal_failure_code=status.HTTP_200_OK,
    done_code=status.HTTP_200_OK,
)


def accepts_auth_api(accept_header: str | None) -> bool:
    if not accept_header:
        return False
    for part in accept_header.split(","):
        media_type = part.split(";", 1)[0].strip().lower()
        if media_type == AUTH_API_ACCEPT_TYPE:
            return True
    return False


def status_code_mapping_for(accept_header: str | None) -> StatusCodeMapping:
    return SEMANTIC_MAPPING if accepts_auth_api(accept_header) else LEGACY_MAPPING
