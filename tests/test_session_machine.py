"""Tests for the interactive session state machine."""

import os
import time

import pytest

from adapters.process_runner import SubprocessRunner
from core.domain.errors import ProcessFailedError, RunCancelled
from core.domain.models import Stage
from core.services.session_machine import (
    Action,
    Directive,
    LogEntry,
    LogLevel,
    Session,
    SessionController,
)


def drive_to(controller, stage):
    """Walk a controller with filled inputs up to `stage`."""
    path = {
        Stage.EMAIL: [],
        Stage.API: [Action.SUBMIT],
        Stage.DOMAINS: [Action.SUBMIT, Action.SUBMIT],
        Stage.CONFIRM: [Action.SUBMIT, Action.SUBMIT, Action.FINISH],
        Stage.RUNNING: [Action.SUBMIT, Action.SUBMIT, Action.FINISH, Action.RUN],
        Stage.DONE: [Action.SUBMIT, Action.SUBMIT, Action.FINISH, Action.RUN, Action.TICK],
    }[stage]
    for action in path:
        controller.dispatch(action)
    assert controller.stage is stage
    return controller


ALLOWED_NEXT = {
    Stage.EMAIL: {Stage.EMAIL, Stage.API},
    Stage.API: {Stage.API, Stage.EMAIL, Stage.DOMAINS},
    Stage.DOMAINS: {Stage.DOMAINS, Stage.API, Stage.CONFIRM},
    Stage.CONFIRM: {Stage.CONFIRM, Stage.DOMAINS, Stage.API, Stage.RUNNING, Stage.DONE},
    Stage.RUNNING: {Stage.RUNNING, Stage.DONE},
    Stage.DONE: {Stage.DONE},
}


class TestInputStages:
    """Test email, API key and domain entry."""

    def test_starts_at_email(self, make_controller):
        """Test the initial stage."""
        controller, _ = make_controller()
        assert controller.stage is Stage.EMAIL

    @pytest.mark.parametrize("value", ["", "   ", "\t"])
    def test_blank_email_is_refused(self, make_controller, value):
        """Test validation keeps the stage."""
        controller, _ = make_controller(session=Session(email=value))
        assert controller.dispatch(Action.SUBMIT) is Directive.NONE
        assert controller.stage is Stage.EMAIL

    def test_email_then_key(self, make_controller):
        """Test the forward path through the inputs."""
        controller, _ = make_controller(session=Session(email="you@example.com"))
        controller.dispatch(Action.SUBMIT)
        assert controller.stage is Stage.API

        controller.dispatch(Action.SUBMIT)
        assert controller.stage is Stage.API

        controller.session.api_key = "key"
        controller.dispatch(Action.SUBMIT)
        assert controller.stage is Stage.DOMAINS

    def test_back_navigation(self, make_controller):
        """Test Esc from API and Domains."""
        controller, _ = make_controller()
        drive_to(controller, Stage.DOMAINS)
        controller.dispatch(Action.BACK)
        assert controller.stage is Stage.API
        controller.dispatch(Action.BACK)
        assert controller.stage is Stage.EMAIL
        controller.dispatch(Action.BACK)
        assert controller.stage is Stage.EMAIL

    def test_enter_does_not_finish_domains(self, make_controller):
        """Test only the explicit finish action leaves the text area."""
        controller, _ = make_controller()
        drive_to(controller, Stage.DOMAINS)
        controller.dispatch(Action.SUBMIT)
        assert controller.stage is Stage.DOMAINS

    def test_finish_normalizes_domains(self, make_controller):
        """Test the preview list is computed at the confirm boundary."""
        controller, _ = make_controller()
        drive_to(controller, Stage.CONFIRM)
        assert controller.session.normalized_domains == ["example.com", "example.org"]

    def test_edit_recomputes_preview(self, make_controller):
        """Test going back to edit and finishing again."""
        controller, _ = make_controller()
        drive_to(controller, Stage.CONFIRM)

        controller.dispatch(Action.EDIT)
        assert controller.stage is Stage.DOMAINS
        controller.session.domains_raw = "new.example.net"
        controller.dispatch(Action.FINISH)

        assert controller.session.normalized_domains == ["new.example.net"]

    def test_confirm_back_goes_to_api(self, make_controller):
        """Test the b key on the confirm screen."""
        controller, _ = make_controller()
        drive_to(controller, Stage.CONFIRM)
        controller.dispatch(Action.BACK)
        assert controller.stage is Stage.API


class TestRun:
    """Test starting, polling and finishing a run."""

    def test_invalid_executable_goes_to_done(self, make_controller):
        """Test a bad script path ends the attempt without a process."""
        controller, runner = make_controller(executable_error="script not found at /x")
        drive_to(controller, Stage.CONFIRM)

        assert controller.dispatch(Action.RUN) is Directive.NONE

        assert controller.stage is Stage.DONE
        assert controller.session.log == [LogEntry("script not found at /x", LogLevel.ERROR)]
        assert runner.started == []

    def test_run_clears_log_and_schedules_tick(self, make_controller):
        """Test the transition into the running stage."""
        controller, runner = make_controller(complete=False)
        drive_to(controller, Stage.CONFIRM)
        controller.session.log.append(LogEntry("stale"))

        assert controller.dispatch(Action.RUN) is Directive.SCHEDULE_TICK

        assert controller.stage is Stage.RUNNING
        assert controller.session.log == []
        executable, request = runner.started[0]
        assert executable == controller.script_path
        assert request.email == "you@example.com"
        assert request.domains_raw == "Example.com, www.example.org"

    def test_tick_appends_output_then_done(self, make_controller):
        """Test a successful run from the UI loop's point of view."""
        controller, _ = make_controller(lines=["one", "", "two"])
        drive_to(controller, Stage.RUNNING)

        assert controller.dispatch(Action.TICK) is Directive.NONE

        assert controller.stage is Stage.DONE
        assert [e.text for e in controller.session.log] == ["one", "two", "Done."]
        assert controller.session.log[-1].level is LogLevel.OK
        assert controller.session.run is None

    def test_tick_rearms_while_running(self, make_controller):
        """Test bounded drain per tick while the process is alive."""
        controller, _ = make_controller(lines=[f"l{i}" for i in range(5)], complete=False, drain_batch=2)
        drive_to(controller, Stage.RUNNING)

        assert controller.dispatch(Action.TICK) is Directive.SCHEDULE_TICK
        assert [e.text for e in controller.session.log] == ["l0", "l1"]
        assert controller.dispatch(Action.TICK) is Directive.SCHEDULE_TICK
        assert controller.stage is Stage.RUNNING
        assert len(controller.session.log) == 4

    def test_remaining_lines_drained_on_completion(self, make_controller):
        """Test no output is lost when completion arrives with a backlog."""
        controller, _ = make_controller(lines=[f"l{i}" for i in range(5)], drain_batch=2)
        drive_to(controller, Stage.RUNNING)

        controller.dispatch(Action.TICK)

        assert [e.text for e in controller.session.log] == ["l0", "l1", "l2", "l3", "l4", "Done."]

    def test_failure_is_last_log_line(self, make_controller):
        """Test a non-zero exit is shown, not raised."""
        controller, _ = make_controller(lines=["working"], error=ProcessFailedError(3))
        drive_to(controller, Stage.DONE)

        last = controller.session.log[-1]
        assert last == LogEntry("Process error: exit status 3", LogLevel.ERROR)

    def test_cancellation_is_clean_stop(self, make_controller):
        """Test a cancelled completion reads as done."""
        controller, _ = make_controller(error=RunCancelled())
        drive_to(controller, Stage.DONE)
        assert controller.session.log[-1] == LogEntry("Done.", LogLevel.OK)

    def test_second_run_is_ignored(self, make_controller):
        """Test at most one run handle per session."""
        controller, runner = make_controller(complete=False)
        drive_to(controller, Stage.RUNNING)

        assert controller.dispatch(Action.RUN) is Directive.NONE
        assert len(runner.started) == 1
        assert controller.stage is Stage.RUNNING

    def test_tick_without_handle_raises(self, make_controller):
        """Test a running stage with no handle is reported as a bug."""
        controller, _ = make_controller(session=Session(stage=Stage.RUNNING))

        with pytest.raises(RuntimeError, match="without a run handle"):
            controller.dispatch(Action.TICK)


class TestQuit:
    """Test quitting and cancellation."""

    @pytest.mark.parametrize("stage", list(Stage))
    def test_quit_everywhere(self, make_controller, stage):
        """Test quit is accepted from every stage."""
        controller, _ = make_controller(complete=stage is not Stage.RUNNING)
        drive_to(controller, stage)
        assert controller.accepts(Action.QUIT)
        assert controller.dispatch(Action.QUIT) is Directive.QUIT

    @pytest.mark.parametrize("action", [Action.CANCEL, Action.QUIT])
    def test_quit_while_running_cancels(self, make_controller, action):
        """Test the run handle is cancelled when leaving mid-run."""
        controller, runner = make_controller(complete=False)
        drive_to(controller, Stage.RUNNING)

        assert controller.dispatch(action) is Directive.QUIT

        assert controller.session.cancel_requested
        assert runner.handles[0].token.cancelled

    def test_cancel_outside_running_is_noop(self, make_controller):
        """Test cancel has no meaning before a run."""
        controller, _ = make_controller()
        drive_to(controller, Stage.CONFIRM)
        assert controller.dispatch(Action.CANCEL) is Directive.NONE
        assert controller.stage is Stage.CONFIRM


class TestTransitionClosure:
    """Test every (stage, action) pair lands on a defined stage."""

    @pytest.mark.parametrize("stage", list(Stage))
    @pytest.mark.parametrize("action", [a for a in Action if a is not Action.QUIT])
    def test_transition_is_defined(self, make_controller, stage, action):
        """Test the stage after any action is one the stage allows."""
        controller, _ = make_controller(complete=stage is Stage.DONE)
        drive_to(controller, stage)
        accepted = controller.accepts(action)

        directive = controller.dispatch(action)

        assert isinstance(directive, Directive)
        assert controller.stage in ALLOWED_NEXT[stage]
        if not accepted:
            assert controller.stage is stage


class TestSession:
    """Test the session container."""

    def test_api_key_hidden_from_repr(self):
        """Test the key is never rendered by repr."""
        session = Session(email="you@example.com", api_key="super-secret")
        assert "super-secret" not in repr(session)

    def test_from_settings_prefills(self):
        """Test environment defaults reach the inputs."""
        from core.config import AppSettings

        settings = AppSettings(_env_file=None, email="a@b.com", api_key="k", domains="x.com")
        session = Session.from_settings(settings)
        assert (session.email, session.api_key, session.domains_raw) == ("a@b.com", "k", "x.com")
        assert session.stage is Stage.EMAIL


@pytest.mark.skipif(os.name != "posix", reason="stub scripts need a POSIX shell")
class TestWithRealRunner:
    """Test the controller over real stub scripts."""

    def _run_to_done(self, controller, timeout=10.0):
        drive_to(controller, Stage.CONFIRM)
        directive = controller.dispatch(Action.RUN)
        deadline = time.monotonic() + timeout
        while directive is Directive.SCHEDULE_TICK:
            assert time.monotonic() < deadline, "run did not finish"
            time.sleep(0.02)
            directive = controller.dispatch(Action.TICK)
        assert controller.stage is Stage.DONE

    def test_echo_round_trip(self, make_script):
        """Test the log holds the three values sent to the script."""
        script = make_script("IFS= read -r a\nIFS= read -r b\nIFS= read -r c\nprintf '%s\\n' \"$a\" \"$b\" \"$c\"\n")
        session = Session(email=" you@example.com ", api_key="key ", domains_raw="a.com, b.com")
        controller = SessionController(SubprocessRunner(), script, session=session)

        self._run_to_done(controller)

        assert [e.text for e in controller.session.log] == [
            "you@example.com",
            "key",
            "a.com, b.com",
            "Done.",
        ]

    def test_failure_visible_in_log(self, make_script):
        """Test a failing script's status is the final log line."""
        script = make_script("echo 'cannot reach API' >&2\nexit 4\n")
        session = Session(email="you@example.com", api_key="key", domains_raw="a.com")
        controller = SessionController(SubprocessRunner(), script, session=session)

        self._run_to_done(controller)

        texts = [e.text for e in controller.session.log]
        assert texts == ["cannot reach API", "Process error: exit status 4"]

    def test_missing_script(self, tmp_path):
        """Test validation happens before anything is spawned."""
        session = Session(email="you@example.com", api_key="key", domains_raw="a.com")
        controller = SessionController(SubprocessRunner(), tmp_path / "missing.sh", session=session)
        drive_to(controller, Stage.CONFIRM)

        controller.dispatch(Action.RUN)

        assert controller.stage is Stage.DONE
        assert "not found" in controller.session.log[0].text
