import pytest

from polling.cookie_signing import BadSignature, CookieSigner


def test_signed_value_round_trip() -> None:
    signer = CookieSigner("secret", "session")

    assert signer.loads(signer.dumps({"sid": "abc"})) == {"sid": "abc"}


def test_tampered_value_is_rejected() -> None:
    signer = CookieSigner("secret", "session")
    value = signer.dumps({"sid": "abc"})
    forged = CookieSigner("secret", "session").dumps({"sid": "xyz"})

    with pytest.raises(BadSignature):
        signer.loads(value.split(".")[0] + "." + forged.split(".")[1])
    assert signer.try_loads(value + "x") is None
    assert signer.try_loads("not-signed") is None
    assert signer.try_loads(None) is None


def test_value_signed_for_other_purpose_is_rejected() -> None:
    value = CookieSigner("secret", "preferences").dumps({"username": "199001019876"})

    assert CookieSigner("secret", "session").try_loads(value) is None
    assert CookieSigner("other-secret", "preferences").try_loads(value) is None


def test_max_age_is_checked_against_issue_time() -> None:
    now = [1700000000.0]
    signer = CookieSigner("secret", "preferences", clock=lambda: now[0])
    value = signer.dumps({"username": "199001019876"})

    now[0] += 100
    assert signer.loads(value, max_age=100) == {"username": "199001019876"}
    assert signer.loads(value) == {"username": "199001019876"}

    now[0] += 1
    with pytest.raises(BadSignature, match="older than 100 seconds"):
        signer.loads(value, max_age=100)
