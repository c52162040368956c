import server


class _DummyUvicorn:
    def __init__(self) -> None:
        self.calls: list[dict] = []

    def run(self, app, **kwargs) -> None:
        self.calls.append({"app": app, **kwargs})


def test_main_uses_local_defaults(monkeypatch) -> None:
    dummy_uvicorn = _DummyUvicorn()
    app = object()
    monkeypatch.setattr(server, "create_app", lambda: app)
    monkeypatch.setattr(server, "uvicorn", dummy_uvicorn)
    monkeypatch.delenv("HTTP_HOST", raising=False)
    monkeypatch.delenv("HTTP_PORT", raising=False)

    server.main()

    assert dummy_uvicorn.calls == [{"app": app, "host": "127.0.0.1", "port": 8000}]


def test_main_reads_host_and_port_from_env(monkeypatch) -> None:
    dummy_uvicorn = _DummyUvicorn()
    app = object()
    monkeypatch.setattr(server, "create_app", lambda: app)
    monkeypatch.setattr(server, "uvicorn", dummy_uvicorn)
    monkeypatch.setenv("HTTP_HOST", "0.0.0.0")
    monkeypatch.setenv("HTTP_PORT", "9100")

    server.main()

    assert dummy_uvicorn.calls == [{"app": app, "host": "0.0.0.0", "port": 9100}]
