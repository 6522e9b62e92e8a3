"""Entry point — argument overrides and exit codes."""

import pytest

import streamgate.main as main_module
from streamgate.core.bootstrap_phase import BootstrapPhase
from streamgate.core.errors import ListenerBindError, StorageConnectionError


class StubBootstrapper:
    def __init__(self, settings, error=None):
        self.settings = settings
        self.error = error
        self.phase = BootstrapPhase.INIT
        self.ran = False

    async def run(self):
        self.ran = True
        if self.error is not None:
            self.phase = BootstrapPhase.FATAL_ABORT
            raise self.error


@pytest.fixture
def captured(monkeypatch):
    state = {"error": None, "bootstrapper": None}

    def build(settings):
        state["bootstrapper"] = StubBootstrapper(settings, state["error"])
        return state["bootstrapper"]

    monkeypatch.setattr(main_module, "build_bootstrapper", build)
    monkeypatch.setattr(main_module, "setup_logging", lambda *args, **kwargs: None)
    return state


def test_cli_overrides_host_and_port(captured):
    main_module.main(["--host", "127.0.0.1", "--port", "8123"])
    settings = captured["bootstrapper"].settings
    assert (settings.host, settings.port) == ("127.0.0.1", 8123)
    assert captured["bootstrapper"].ran


def test_invalid_configuration_exits_1(captured, monkeypatch):
    monkeypatch.setenv("ACCESS_LOG_FORMAT", "apache")
    with pytest.raises(SystemExit) as exc_info:
        main_module.main([])
    assert exc_info.value.code == 1
    assert captured["bootstrapper"] is None


@pytest.mark.parametrize("error", [
    StorageConnectionError("refused", 3),
    ListenerBindError("0.0.0.0", 2016, "Address already in use"),
])
def test_fatal_bootstrap_errors_exit_1(captured, error):
    captured["error"] = error
    with pytest.raises(SystemExit) as exc_info:
        main_module.main([])
    assert exc_info.value.code == 1
