"""Live handle to one backup process.

The UI loop and the runner threads share exactly three things, all bundled
here: a cancellation token, a bounded queue of output lines and a one-slot
completion queue. The loop only ever reads from the queues without blocking;
the threads only ever write to them.
"""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass, field
from typing import Callable

from core.domain.errors import RunCancelled

DEFAULT_LINE_QUEUE_SIZE = 4096


class CancelToken:
    """One-shot cancellation flag with callbacks.

    Callbacks are registered by the runner before the handle is handed to the
    UI loop, and run on the thread that calls `cancel()`.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def on_cancel(self, callback: Callable[[], None]) -> None:
        if self.cancelled:
            callback()
            return
        self._callbacks.append(callback)

    def cancel(self) -> None:
        if self._event.is_set():
            return
        self._event.set()
        for callback in self._callbacks:
            callback()


@dataclass(frozen=True)
class Completion:
    """Terminal message of a run: success, cancellation or a specific error."""

    error: Exception | None = None

    @property
    def cancelled(self) -> bool:
        return isinstance(self.error, RunCancelled)

    @property
    def failed(self) -> bool:
        return self.error is not None and not self.cancelled


@dataclass
class RunHandle:
    """Handle to one invocation of the backup script."""

    token: CancelToken = field(default_factory=CancelToken)
    lines: queue.Queue[str] = field(
        default_factory=lambda: queue.Queue(maxsize=DEFAULT_LINE_QUEUE_SIZE)
    )
    completion: queue.Queue[Completion] = field(
        default_factory=lambda: queue.Queue(maxsize=1)
    )
    _result: Completion | None = field(default=None, init=False, repr=False)

    @property
    def running(self) -> bool:
        return self._result is None and self.completion.empty()

    def publish_line(self, line: str) -> None:
        self.lines.put(line)

    def publish_completion(self, completion: Completion) -> None:
        # Single slot: a second publish would block forever, so it is refused.
        self.completion.put_nowait(completion)

    def drain(self, limit: int) -> list[str]:
        """Pop up to `limit` queued lines without blocking."""

        out: list[str] = []
        while len(out) < limit:
            try:
                out.append(self.lines.get_nowait())
            except queue.Empty:
                break
        return out

    def poll(self) -> Completion | None:
        """Return the completion once it has been published, else None."""

        if self._result is None:
            try:
                self._result = self.completion.get_nowait()
            except queue.Empty:
                return None
        return self._result

    def cancel(self) -> None:
        self.token.cancel()
