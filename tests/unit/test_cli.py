"""
Unit tests for the command-line entry point.
"""

import pytest

from httprint import __main__ as cli
from httprint.errors import BindError


USAGE = (
    "Usage: httprint [ADDRESS]\n"
    "\n"
    "Parameters:\n"
    "  ADDRESS\tAddress to listen (default: 127.0.0.1:8000)\n"
)


class RecordingServer:
    """Stands in for HTTPrintServer and records how it was used."""

    instances = []

    def __init__(self, config, out=None, err=None):
        self.config = config
        self.ran = False
        RecordingServer.instances.append(self)

    def run(self):
        self.ran = True


@pytest.fixture
def recording_server(monkeypatch):
    RecordingServer.instances = []
    monkeypatch.setattr(cli, "HTTPrintServer", RecordingServer)
    monkeypatch.setattr(cli, "setup_logging", lambda config: None)
    return RecordingServer


class TestProgramName:
    @pytest.mark.parametrize("argv0, expected", [
        ("/usr/local/bin/httprint", "httprint"),
        ("./inspect", "inspect"),
        ("bare", "bare"),
        ("/path/to/httprint/__main__.py", "httprint"),
        ("dir/", "httprint"),
        ("", "httprint"),
        (None, "httprint"),
    ])
    def test_last_path_segment(self, argv0, expected):
        assert cli.program_name(argv0) == expected


class TestMain:
    def test_help_prints_usage_without_binding(self, recording_server, capsys):
        assert cli.main(["/usr/bin/httprint", "--help"]) == 0

        assert capsys.readouterr().out == USAGE
        assert recording_server.instances == []

    def test_extra_arguments_print_usage(self, recording_server, capsys):
        assert cli.main(["httprint", "127.0.0.1:1", "127.0.0.1:2"]) == 0

        assert capsys.readouterr().out == USAGE
        assert recording_server.instances == []

    def test_help_after_address_prints_usage(self, recording_server, capsys):
        assert cli.main(["httprint", "127.0.0.1:1", "--help"]) == 0

        assert capsys.readouterr().out.startswith("Usage: httprint [ADDRESS]")
        assert recording_server.instances == []

    def test_usage_uses_program_name(self, recording_server, capsys):
        cli.main(["/opt/tools/peek", "--help"])

        assert capsys.readouterr().out.startswith("Usage: peek [ADDRESS]\n\n")

    def test_default_address(self, recording_server, monkeypatch):
        monkeypatch.delenv("HTTPRINT_LOG_LEVEL", raising=False)

        assert cli.main(["httprint"]) == 0

        server = recording_server.instances[0]
        assert server.config.address == "127.0.0.1:8000"
        assert server.ran

    def test_given_address(self, recording_server):
        assert cli.main(["httprint", "0.0.0.0:9000"]) == 0

        assert recording_server.instances[0].config.address == "0.0.0.0:9000"

    def test_bind_error_exits_1(self, monkeypatch, capsys):
        class FailingServer(RecordingServer):
            def run(self):
                raise BindError("cannot bind 127.0.0.1:80: permission denied")

        monkeypatch.setattr(cli, "HTTPrintServer", FailingServer)
        monkeypatch.setattr(cli, "setup_logging", lambda config: None)

        assert cli.main(["httprint", "127.0.0.1:80"]) == 1
        assert capsys.readouterr().err == "error: cannot bind 127.0.0.1:80: permission denied\n"

    def test_invalid_env_config_exits_1(self, recording_server, monkeypatch, capsys):
        monkeypatch.setenv("HTTPRINT_TIMEOUT", "-1")

        assert cli.main(["httprint"]) == 1
        assert "timeout" in capsys.readouterr().err
        assert recording_server.instances == []
