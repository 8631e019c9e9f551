from __future__ import annotations

import sys
import threading
import time
from contextlib import contextmanager
from typing import IO, Iterator

from rich.console import Console
from rich.markup import escape
from rich.status import Status

from .errors import ToneTuneError
from .logging_utils import get_log_path


class _AsciiSpinner:
    def __init__(
        self,
        message: str,
        *,
        interval: float = 0.1,
        stream: IO[str] | None = None,
    ) -> None:
        self._message = message
        self._interval = interval
        self._stream = stream or sys.stderr
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()
        self._last_len = 0

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def update(self, message: str) -> None:
        with self._lock:
            self._message = message

    def stop(self) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=0.2)
        self._clear_line()

    def _run(self) -> None:
        frames = "|/-\\"
        index = 0
        while not self._stop.is_set():
            with self._lock:
                message = self._message
            self._render(f"{message} {frames[index % len(frames)]}")
            index += 1
            time.sleep(self._interval)

    def _render(self, text: str) -> None:
        self._last_len = max(self._last_len, len(text))
        self._stream.write(f"\r{text}")
        self._stream.flush()

    def _clear_line(self) -> None:
        if self._last_len <= 0:
            return
        self._stream.write("\r" + (" " * self._last_len) + "\r")
        self._stream.flush()


class _RichSpinner:
    def __init__(self, message: str, *, console: Console) -> None:
        self._message = message
        self._console = console
        self._status: Status | None = None

    def start(self) -> None:
        if self._status is not None:
            return
        self._status = self._console.status(self._message)
        self._status.start()

    def update(self, message: str) -> None:
        self._message = message
        if self._status is not None:
            self._status.update(message)

    def stop(self) -> None:
        if self._status is None:
            return
        self._status.stop()
        self._status = None


class Spinner:
    """Spinner helper: rich status on capable terminals, ASCII frames on dumb ones."""

    def __init__(
        self,
        message: str,
        *,
        interval: float = 0.1,
        stream: IO[str] | None = None,
        enabled: bool | None = None,
    ) -> None:
        self._message = message
        self._stream = stream or sys.stderr
        self._enabled = self._stream.isatty() if enabled is None else enabled
        self._backend: _AsciiSpinner | _RichSpinner | None = None
        if not self._enabled:
            return
        console = Console(file=self._stream)
        if console.is_dumb_terminal:
            self._backend = _AsciiSpinner(message, interval=interval, stream=self._stream)
        else:
            self._backend = _RichSpinner(message, console=console)

    def start(self) -> None:
        if self._backend is None:
            return
        self._backend.start()

    def update(self, message: str) -> None:
        self._message = message
        if self._backend is None:
            return
        self._backend.update(message)

    def stop(self) -> None:
        if self._backend is None:
            return
        self._backend.stop()

    def __enter__(self) -> "Spinner":
        self.start()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.stop()


@contextmanager
def spinner(
    message: str,
    *,
    stream: IO[str] | None = None,
    enabled: bool | None = None,
) -> Iterator[Spinner]:
    handle = Spinner(message, stream=stream, enabled=enabled)
    handle.start()
    try:
        yield handle
    finally:
        handle.stop()


def render_error(context: str, exc: BaseException, *, console: Console | None = None) -> None:
    """Print a short, user-facing error panel line for ``exc``."""

    target = console or Console(stderr=True)
    code = exc.code if isinstance(exc, ToneTuneError) else type(exc).__name__
    target.print(f"[bold red]{context} failed[/] [dim]({code})[/]: {escape(str(exc))}", highlight=False)
    target.print(f"[dim]Details were appended to {get_log_path()}[/]", highlight=False)
