import subprocess

import pytest

from dicomqr.errors import ProtocolError
from dicomqr.net import runner


class _Completed:
    def __init__(self, returncode=0, stdout="", stderr=""):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


def test_returns_stdout_on_success(monkeypatch):
    seen = {}

    def fake_run(cmd, **kwargs):
        seen.update(kwargs)
        return _Completed(stdout="ok\n")

    monkeypatch.setattr(runner.subprocess, "run", fake_run)
    assert runner.run_tool(["docker", "run"], timeout=5) == "ok\n"
    assert seen["timeout"] == 5
    assert seen["capture_output"] is True


def test_nonzero_exit_raises_with_last_line(monkeypatch):
    monkeypatch.setattr(
        runner.subprocess,
        "run",
        lambda cmd, **kw: _Completed(returncode=2, stderr="noise\nAssociation rejected\n"),
    )
    with pytest.raises(ProtocolError) as info:
        runner.run_tool(["findscu"], server="PACS")
    assert info.value.server == "PACS"
    assert "exit status 2: Association rejected" in str(info.value)


def test_nonzero_exit_without_output(monkeypatch):
    monkeypatch.setattr(runner.subprocess, "run", lambda cmd, **kw: _Completed(returncode=1))
    with pytest.raises(ProtocolError, match="no output"):
        runner.run_tool(["findscu"])


def test_timeout_raises(monkeypatch):
    def fake_run(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

    monkeypatch.setattr(runner.subprocess, "run", fake_run)
    with pytest.raises(ProtocolError, match="timed out after 3s"):
        runner.run_tool(["findscu"], timeout=3, server="PACS")


def test_missing_executable_raises(monkeypatch):
    def fake_run(cmd, **kwargs):
        raise FileNotFoundError("docker")

    monkeypatch.setattr(runner.subprocess, "run", fake_run)
    with pytest.raises(ProtocolError, match="Cannot execute docker"):
        runner.run_tool(["docker"])


def test_output_is_decoded_leniently(monkeypatch):
    seen = {}

    def fake_run(cmd, **kwargs):
        seen.update(kwargs)
        return _Completed(stdout="(0010,0010) PN [M\ufffdlanie]\n")

    monkeypatch.setattr(runner.subprocess, "run", fake_run)
    assert "M\ufffdlanie" in runner.run_tool(["findscu"])
    assert (seen["encoding"], seen["errors"]) == ("utf-8", "replace")


def test_undecodable_output_raises(monkeypatch):
    def fake_run(cmd, **kwargs):
        raise UnicodeDecodeError("utf-8", b"\xe9", 0, 1, "invalid continuation byte")

    monkeypatch.setattr(runner.subprocess, "run", fake_run)
    with pytest.raises(ProtocolError, match="Unreadable output") as info:
        runner.run_tool(["findscu"], server="PACS")
    assert info.value.server == "PACS"
