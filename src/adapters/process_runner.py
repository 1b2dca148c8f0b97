"""Ejecutor del script de backup (`subprocess` + hilos).

Por qué hilos y no asyncio:
- La TUI consulta la salida por polling; no necesita awaitables, solo colas.
- Un hilo lector y un hilo supervisor por ejecución, ambos daemon: si el
  usuario sale a mitad, no bloquean el cierre del intérprete.

Protocolo con el script:
- stdin: email, API key y texto de dominios, una línea cada uno, y EOF.
- stdout + stderr: fusionados en una sola tubería, leídos línea a línea.
- exit 0 = éxito; otro código = error; terminado por cancelación = cancelado.
"""

from __future__ import annotations

import os
import queue
import signal
import stat
import subprocess
import threading
from pathlib import Path
from typing import IO

from core.config import AppSettings
from core.domain.errors import (
    ExecutableError,
    ProcessFailedError,
    ProcessLaunchError,
    RunCancelled,
)
from core.domain.models import BackupRequest
from core.domain.run import DEFAULT_LINE_QUEUE_SIZE, Completion, RunHandle
from core.logger import get_logger

logger = get_logger("runner")

_POSIX = os.name == "posix"


def ensure_executable(path: str | Path | None) -> Path:
    """Valida la ruta del script y le añade el bit de ejecución si falta.

    Lanza `ExecutableError` si la ruta está vacía, no existe, es un
    directorio o no se puede dejar legible/ejecutable.
    """

    if path is None or not str(path).strip():
        raise ExecutableError("script path is empty")

    script = Path(path)
    try:
        st = script.stat()
    except OSError as exc:
        raise ExecutableError(f"script not found at {script}: {exc.strerror or exc}") from exc

    if stat.S_ISDIR(st.st_mode):
        raise ExecutableError(f"{script} is a directory")

    if _POSIX and not st.st_mode & 0o111:
        try:
            script.chmod(0o755)
        except OSError as exc:
            raise ExecutableError(f"cannot make {script} executable: {exc.strerror or exc}") from exc
        logger.info("added execute permission to %s", script)

    if _POSIX and not os.access(script, os.R_OK | os.X_OK):
        raise ExecutableError(f"{script} is not readable and executable")

    return script


def _pump_lines(stream: IO[bytes], handle: RunHandle) -> None:
    """Lee la salida fusionada y publica cada línea, en orden."""

    try:
        for raw in iter(stream.readline, b""):
            handle.publish_line(raw.decode("utf-8", errors="replace").rstrip("\r\n"))
    except (OSError, ValueError) as exc:
        # La tubería se cerró a mitad; la finalización la publica el supervisor.
        logger.debug("output stream closed early: %s", exc)
    finally:
        stream.close()


class SubprocessRunner:
    """Implementación de `ProcessRunner` sobre `subprocess.Popen`."""

    def __init__(
        self,
        *,
        interpreter: str | None = None,
        line_queue_size: int = DEFAULT_LINE_QUEUE_SIZE,
        terminate_grace_seconds: float = 3.0,
    ) -> None:
        self._interpreter = interpreter or None
        self._line_queue_size = line_queue_size
        self._grace = terminate_grace_seconds

    @classmethod
    def from_settings(cls, settings: AppSettings) -> "SubprocessRunner":
        return cls(
            interpreter=settings.interpreter,
            line_queue_size=settings.line_queue_size,
            terminate_grace_seconds=settings.terminate_grace_seconds,
        )

    def ensure_executable(self, path: str | Path) -> Path:
        return ensure_executable(path)

    def build_argv(self, executable: Path) -> list[str]:
        if self._interpreter:
            return [self._interpreter, str(executable)]
        return [str(executable)]

    def start(self, executable: Path, request: BackupRequest) -> RunHandle:
        handle = RunHandle(lines=queue.Queue(maxsize=self._line_queue_size))
        argv = self.build_argv(executable)

        try:
            proc = subprocess.Popen(
                argv,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                # Grupo propio: cancelar mata también a los hijos del script.
                start_new_session=_POSIX,
            )
        except OSError as exc:
            logger.warning("failed to launch %s: %s", executable, exc)
            handle.publish_completion(Completion(error=ProcessLaunchError(str(exc))))
            return handle

        handle.token.on_cancel(lambda: self._terminate(proc))
        logger.info("started %s (pid %s)", executable, proc.pid)

        if proc.stdout is None:
            raise RuntimeError("process started without an output pipe")
        reader = threading.Thread(
            target=_pump_lines,
            args=(proc.stdout, handle),
            name=f"cwbackup-reader-{proc.pid}",
            daemon=True,
        )
        reader.start()

        supervisor = threading.Thread(
            target=self._supervise,
            args=(proc, handle, reader, request.stdin_payload()),
            name=f"cwbackup-supervisor-{proc.pid}",
            daemon=True,
        )
        supervisor.start()
        return handle

    def _supervise(
        self,
        proc: subprocess.Popen[bytes],
        handle: RunHandle,
        reader: threading.Thread,
        payload: str,
    ) -> None:
        if proc.stdin is None:
            raise RuntimeError("process started without an input pipe")
        try:
            proc.stdin.write(payload.encode("utf-8"))
            proc.stdin.flush()
        except OSError as exc:
            # El script salió sin leer todo su stdin.
            logger.debug("stdin closed by process: %s", exc)
        finally:
            try:
                proc.stdin.close()
            except OSError:
                pass

        returncode = proc.wait()
        reader.join()

        error: Exception | None = None
        if returncode < 0 and handle.token.cancelled:
            # Killed by our own SIGTERM or the grace SIGKILL.
            error = RunCancelled()
        elif returncode != 0:
            error = ProcessFailedError(returncode)
        logger.info("process %s finished with status %s", proc.pid, returncode)
        handle.publish_completion(Completion(error=error))

    def _terminate(self, proc: subprocess.Popen[bytes]) -> None:
        if proc.poll() is not None:
            return
        logger.info("cancelling process %s", proc.pid)
        self._signal(proc, signal.SIGTERM)
        killer = threading.Timer(self._grace, self._kill_if_alive, args=(proc,))
        killer.daemon = True
        killer.start()

    def _kill_if_alive(self, proc: subprocess.Popen[bytes]) -> None:
        if proc.poll() is None:
            logger.warning("process %s ignored SIGTERM, killing", proc.pid)
            self._signal(proc, getattr(signal, "SIGKILL", signal.SIGTERM))

    @staticmethod
    def _signal(proc: subprocess.Popen[bytes], sig: int) -> None:
        try:
            if _POSIX:
                os.killpg(proc.pid, sig)
            else:
                proc.send_signal(sig)
        except ProcessLookupError:
            pass
