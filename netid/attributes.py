"""Turn a completed Net iD Access collect result into authentication attributes.

The subject is the personal number when the service returns one, otherwise
the user's unique name. A completed result must carry both user info and
device info.
"""

from __future__ import annotations

from typing import Any

from polling.models import AuthenticationAttributes


class AttributeParseError(RuntimeError):
    pass


def _require_mapping(payload: dict, key: str, message: str) -> dict:
    value = payload.get(key)
    if not isinstance(value, dict):
        raise AttributeParseError(message)
    return value


def _subject_attributes(user_info: dict) -> tuple[str, dict[str, Any]]:
    personal_number = user_info.get("personalNumber")
    user_id = user_info.get("userUniqueName")
    if personal_number is None and user_id is None:
        raise AttributeParseError("Did not get a user identifier in Net iD response")

    subject = personal_number if personal_number is not None else user_id
    attributes: dict[str, Any] = {"subject": subject}
    if user_id is not None:
        attributes["userId"] = user_id
    if personal_number is not None:
        attributes["personalNumber"] = personal_number

    name = {}
    if user_info.get("givenName") is not None:
        name["givenName"] = user_info["givenName"]
    if user_info.get("surname") is not None:
        name["familyName"] = user_info["surname"]
    if user_info.get("name") is not None:
        name["formatted"] = user_info["name"]
    if name:
        attributes["name"] = name

    certificate = user_info.get("certificate")
    if certificate:
        attributes["x509Certificates"] = [{"value": certificate, "primary": True}]

    return subject, attributes


def _context_attributes(payload: dict) -> dict[str, Any]:
    device_info = _require_mapping(payload, "deviceInfo", "Did not get DeviceInfo in response")
    attributes: dict[str, Any] = {
        "deviceType": device_info.get("name"),
        "ipAddress": device_info.get("address"),
    }
    ocsp_response = payload.get("ocspResponse")
    if ocsp_response:
        attributes["ocspResponse"] = ocsp_response
    return attributes


def parse_collect_attributes(payload: dict) -> AuthenticationAttributes:
    user_info = _require_mapping(payload, "userInfo", "Did not get UserInfo in response")
    subject, subject_attributes = _subject_attributes(user_info)
    return AuthenticationAttributes(
        subject=subject,
        subject_attributes=subject_attributes,
        context_attributes=_context_attributes(payload),
    )
