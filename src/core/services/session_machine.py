"""Interactive session state machine.

This module holds everything the terminal UI decides, but none of how it
draws: the current stage, the values typed so far, the normalized domain
preview, the output log and the running process handle. The UI forwards
user input and timer ticks as `Action` values and obeys the returned
`Directive` (nothing to do, quit, or schedule the next polling tick).

Keeping the controller free of Textual makes every transition testable with
a fake runner and no terminal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable

from pydantic import ValidationError

from core.config import AppSettings
from core.domain.errors import ExecutableError
from core.domain.models import BackupRequest, Stage
from core.domain.run import RunHandle
from core.interfaces.runner import ProcessRunner
from core.logger import get_logger
from core.services.domain_normalizer import normalize_domains

logger = get_logger("session")

DEFAULT_DRAIN_BATCH = 200


class Action(str, Enum):
    """Inputs the session reacts to."""

    SUBMIT = "submit"
    BACK = "back"
    FINISH = "finish"
    RUN = "run"
    EDIT = "edit"
    CANCEL = "cancel"
    QUIT = "quit"
    TICK = "tick"


class Directive(str, Enum):
    """What the UI loop must do after an action."""

    NONE = "none"
    QUIT = "quit"
    SCHEDULE_TICK = "schedule_tick"


class LogLevel(str, Enum):
    OUTPUT = "output"
    OK = "ok"
    ERROR = "error"


@dataclass(frozen=True)
class LogEntry:
    text: str
    level: LogLevel = LogLevel.OUTPUT


@dataclass
class Session:
    """Mutable state of one interactive run."""

    stage: Stage = Stage.EMAIL
    email: str = ""
    api_key: str = field(default="", repr=False)
    domains_raw: str = ""
    normalized_domains: list[str] = field(default_factory=list)
    log: list[LogEntry] = field(default_factory=list)
    cancel_requested: bool = False
    run: RunHandle | None = None

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "Session":
        return cls(email=settings.email, api_key=settings.api_key, domains_raw=settings.domains)


class SessionController:
    """Drives a `Session` through its stages.

    Only the UI loop calls `dispatch`; the runner threads never touch the
    session, they only fill the `RunHandle` queues.
    """

    def __init__(
        self,
        runner: ProcessRunner,
        script_path: Path,
        *,
        session: Session | None = None,
        drain_batch: int = DEFAULT_DRAIN_BATCH,
    ) -> None:
        self.session = session or Session()
        self.script_path = script_path
        self._runner = runner
        self._drain_batch = drain_batch
        self._handlers: dict[tuple[Stage, Action], Callable[[], Directive]] = {
            (Stage.EMAIL, Action.SUBMIT): self._submit_email,
            (Stage.API, Action.SUBMIT): self._submit_api_key,
            (Stage.API, Action.BACK): self._goto(Stage.EMAIL),
            (Stage.DOMAINS, Action.FINISH): self._finish_domains,
            (Stage.DOMAINS, Action.BACK): self._goto(Stage.API),
            (Stage.CONFIRM, Action.RUN): self._start_run,
            (Stage.CONFIRM, Action.EDIT): self._goto(Stage.DOMAINS),
            (Stage.CONFIRM, Action.BACK): self._goto(Stage.API),
            (Stage.RUNNING, Action.TICK): self._poll_run,
            (Stage.RUNNING, Action.CANCEL): self._quit,
        }

    @property
    def stage(self) -> Stage:
        return self.session.stage

    def accepts(self, action: Action) -> bool:
        """Whether `action` does anything in the current stage."""

        return action is Action.QUIT or (self.session.stage, action) in self._handlers

    def dispatch(self, action: Action) -> Directive:
        if action is Action.QUIT:
            return self._quit()
        handler = self._handlers.get((self.session.stage, action))
        if handler is None:
            return Directive.NONE
        return handler()

    # -- transitions -------------------------------------------------------

    def _set_stage(self, stage: Stage) -> None:
        logger.debug("stage %s -> %s", self.session.stage.value, stage.value)
        self.session.stage = stage

    def _goto(self, stage: Stage) -> Callable[[], Directive]:
        def handler() -> Directive:
            self._set_stage(stage)
            return Directive.NONE

        return handler

    def _submit_email(self) -> Directive:
        if self.session.email.strip():
            self._set_stage(Stage.API)
        return Directive.NONE

    def _submit_api_key(self) -> Directive:
        if self.session.api_key.strip():
            self._set_stage(Stage.DOMAINS)
        return Directive.NONE

    def _finish_domains(self) -> Directive:
        self.session.normalized_domains = normalize_domains(self.session.domains_raw)
        logger.info("parsed %d domain(s)", len(self.session.normalized_domains))
        self._set_stage(Stage.CONFIRM)
        return Directive.NONE

    def _start_run(self) -> Directive:
        session = self.session
        if session.run is not None:
            return Directive.NONE

        try:
            executable = self._runner.ensure_executable(self.script_path)
            request = BackupRequest(
                email=session.email,
                api_key=session.api_key,
                domains_raw=session.domains_raw,
            )
        except ExecutableError as exc:
            return self._fail_before_start(str(exc))
        except ValidationError:
            return self._fail_before_start("email and API key are required")

        session.log.clear()
        session.cancel_requested = False
        session.run = self._runner.start(executable, request)
        self._set_stage(Stage.RUNNING)
        return Directive.SCHEDULE_TICK

    def _fail_before_start(self, message: str) -> Directive:
        logger.warning("run not started: %s", message)
        self.session.log.clear()
        self.session.log.append(LogEntry(message, LogLevel.ERROR))
        self._set_stage(Stage.DONE)
        return Directive.NONE

    def _poll_run(self) -> Directive:
        run = self.session.run
        if run is None:
            raise RuntimeError("running stage without a run handle")

        for line in run.drain(self._drain_batch):
            self._append(line)

        completion = run.poll()
        if completion is None:
            return Directive.SCHEDULE_TICK

        # Every line is queued before the completion is published.
        while batch := run.drain(self._drain_batch):
            for line in batch:
                self._append(line)

        if completion.failed:
            self.session.log.append(LogEntry(f"Process error: {completion.error}", LogLevel.ERROR))
        else:
            self.session.log.append(LogEntry("Done.", LogLevel.OK))
        self.session.run = None
        self._set_stage(Stage.DONE)
        return Directive.NONE

    def _quit(self) -> Directive:
        run = self.session.run
        if run is not None and run.running:
            self.session.cancel_requested = True
            run.cancel()
        return Directive.QUIT

    def _append(self, line: str) -> None:
        if line:
            self.session.log.append(LogEntry(line))
