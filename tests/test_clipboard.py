import subprocess

import pytest

from termi import clipboard, runner


def test_platform_commands(monkeypatch):
    assert clipboard.clipboard_command("darwin") == ["pbcopy"]
    assert clipboard.clipboard_command("win32") == ["clip"]
    monkeypatch.setattr(clipboard.shutil, "which", lambda name: name == "xsel")
    assert clipboard.clipboard_command("linux") == ["xsel", "--clipboard", "--input"]


def test_no_utility(monkeypatch):
    monkeypatch.setattr(clipboard.shutil, "which", lambda name: None)
    with pytest.raises(RuntimeError):
        clipboard.clipboard_command("linux")


def test_copy_pipes_text(monkeypatch):
    calls = []

    def fake_run(cmd, **kwargs):
        calls.append((cmd, kwargs["input"]))
        return subprocess.CompletedProcess(cmd, 0, "", "")

    monkeypatch.setattr(clipboard, "clipboard_command", lambda platform=None: ["pbcopy"])
    monkeypatch.setattr(clipboard.subprocess, "run", fake_run)
    clipboard.copy("ls -la")
    assert calls == [(["pbcopy"], "ls -la")]


def test_copy_failure_raises(monkeypatch):
    monkeypatch.setattr(clipboard, "clipboard_command", lambda platform=None: ["xclip"])
    monkeypatch.setattr(
        clipboard.subprocess, "run",
        lambda cmd, **kw: subprocess.CompletedProcess(cmd, 1, "", "Can't open display"),
    )
    with pytest.raises(RuntimeError, match="display"):
        clipboard.copy("ls")


def test_runner_returns_exit_code(monkeypatch):
    seen = []

    def fake_run(cmd):
        seen.append(cmd)
        return subprocess.CompletedProcess(cmd, 7)

    monkeypatch.setattr(runner.subprocess, "run", fake_run)
    assert runner.run("exit 7") == 7
    assert seen == [["bash", "-c", "exit 7"]]
