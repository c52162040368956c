import pytest

from netid.attributes import AttributeParseError, parse_collect_attributes


def _collect_payload(**user_info) -> dict:
    return {
        "progressStatus": "COMPLETE",
        "userInfo": {
            "givenName": "Anna",
            "surname": "Andersson",
            "name": "Anna Andersson",
            "personalNumber": "199001019876",
            "certificate": "MIIC...",
            **user_info,
        },
        "deviceInfo": {"name": "Net iD Access for iOS", "address": "192.0.2.10"},
        "ocspResponse": "MIIH...",
    }


def test_parse_full_collect_result() -> None:
    attributes = parse_collect_attributes(_collect_payload(userUniqueName="anna"))

    assert attributes.subject == "199001019876"
    assert attributes.subject_attributes == {
        "subject": "199001019876",
        "userId": "anna",
        "personalNumber": "199001019876",
        "name": {
            "givenName": "Anna",
            "familyName": "Andersson",
            "formatted": "Anna Andersson",
        },
        "x509Certificates": [{"value": "MIIC...", "primary": True}],
    }
    assert attributes.context_attributes == {
        "deviceType": "Net iD Access for iOS",
        "ipAddress": "192.0.2.10",
        "ocspResponse": "MIIH...",
    }


def test_unique_name_is_subject_without_personal_number() -> None:
    payload = _collect_payload(userUniqueName="anna")
    del payload["userInfo"]["personalNumber"]

    attributes = parse_collect_attributes(payload)

    assert attributes.subject == "anna"
    assert "personalNumber" not in attributes.subject_attributes


def test_missing_identifier_is_rejected() -> None:
    payload = _collect_payload()
    del payload["userInfo"]["personalNumber"]

    with pytest.raises(AttributeParseError):
        parse_collect_attributes(payload)


@pytest.mark.parametrize("key", ["userInfo", "deviceInfo"])
def test_missing_info_blocks_are_rejected(key) -> None:
    payload = _collect_payload()
    del payload[key]

    with pytest.raises(AttributeParseError):
        parse_collect_attributes(payload)


def test_optional_fields_are_left_out() -> None:
    payload = {
        "userInfo": {"personalNumber": "199001019876"},
        "deviceInfo": {"name": "Net iD Access", "address": "192.0.2.10"},
    }

    attributes = parse_collect_attributes(payload)

    assert attributes.subject_attributes == {
        "subject": "199001019876",
        "personalNumber": "199001019876",
    }
    assert "ocspResponse" not in attributes.context_attributes
