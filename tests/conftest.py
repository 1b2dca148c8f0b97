"""Shared fixtures: stub scripts, a fake runner and a completion waiter."""

import os
import time
from pathlib import Path

import pytest

from core.domain.errors import ExecutableError
from core.domain.models import BackupRequest
from core.domain.run import Completion, RunHandle
from core.services.session_machine import Session, SessionController


class FakeRunner:
    """In-memory `ProcessRunner`: each start returns a pre-filled handle."""

    def __init__(self, lines=(), error=None, complete=True, executable_error=None):
        self.lines = list(lines)
        self.error = error
        self.complete = complete
        self.executable_error = executable_error
        self.started: list[tuple[Path, BackupRequest]] = []
        self.handles: list[RunHandle] = []

    def ensure_executable(self, path):
        if self.executable_error:
            raise ExecutableError(self.executable_error)
        return Path(path)

    def start(self, executable, request):
        handle = RunHandle()
        for line in self.lines:
            handle.publish_line(line)
        if self.complete:
            handle.publish_completion(Completion(error=self.error))
        self.started.append((executable, request))
        self.handles.append(handle)
        return handle


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep CW_* variables from the developer's shell out of the tests."""
    for key in list(os.environ):
        if key.upper().startswith("CW_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def make_script(tmp_path):
    """Write a stub backup script and return its path."""

    def _make(body, name="stub.sh", executable=True, shebang="#!/bin/sh"):
        path = tmp_path / name
        header = f"{shebang}\n" if shebang else ""
        path.write_text(header + body, encoding="utf-8")
        path.chmod(0o755 if executable else 0o644)
        return path

    return _make


@pytest.fixture
def make_controller(tmp_path):
    """Controller over a `FakeRunner`, with all three inputs filled in."""

    def _make(session=None, drain_batch=200, **runner_kwargs):
        runner = FakeRunner(**runner_kwargs)
        session = session or Session(
            email="you@example.com",
            api_key="secret-key",
            domains_raw="Example.com, www.example.org",
        )
        controller = SessionController(
            runner, tmp_path / "domain-based-backup.sh", session=session, drain_batch=drain_batch
        )
        return controller, runner

    return _make


@pytest.fixture
def wait_for_completion():
    """Poll a handle until it completes; return (lines, completion)."""

    def _wait(handle, timeout=10.0):
        deadline = time.monotonic() + timeout
        lines = []
        while time.monotonic() < deadline:
            lines.extend(handle.drain(1000))
            completion = handle.poll()
            if completion is not None:
                lines.extend(handle.drain(1_000_000))
                return lines, completion
            time.sleep(0.02)
        raise AssertionError("run did not complete in time")

    return _wait
