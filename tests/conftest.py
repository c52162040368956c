import os

import pytest


@pytest.fixture(autouse=True)
def _clean_netid_env(monkeypatch) -> None:
    for key in list(os.environ):
        if key.startswith("NETID_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def netid_env(monkeypatch) -> None:
    monkeypatch.setenv("NETID_PUBLIC_URL", "https://login.example.com")
    monkeypatch.setenv("NETID_SESSION_SECRET", "test-secret")
