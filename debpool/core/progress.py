"""Progress sinks: a no-op default and a Rich terminal implementation.

Sinks are always injected (constructor argument or explicit parameter).
Code that receives ``None`` falls back to ``NullProgress`` and keeps
working silently.
"""

from __future__ import annotations

import threading

from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    MofNCompleteColumn,
    Progress as RichProgressDisplay,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)

from debpool.core.interfaces import Progress


class NullProgress:
    """Progress sink for "no progress requested": accepts and drops everything."""

    def write(self, data: bytes) -> int:
        return len(data)

    def start(self) -> None:
        pass

    def shutdown(self) -> None:
        pass

    def flush(self) -> None:
        pass

    def init_bar(self, count: int, is_bytes: bool) -> None:
        pass

    def shutdown_bar(self) -> None:
        pass

    def add_bar(self, count: int) -> None:
        pass

    def set_bar(self, count: int) -> None:
        pass

    def printf(self, msg: str, *args: object) -> None:
        pass

    def colored_printf(self, msg: str, *args: object) -> None:
        pass


def ensure_progress(progress: Progress | None) -> Progress:
    """Return ``progress`` or a ``NullProgress`` when none was given."""
    return progress if progress is not None else NullProgress()


class RichProgress:
    """Terminal progress sink backed by ``rich.progress``.

    One bar is active at a time.  Messages go through the same Rich console,
    which keeps them above the live bar instead of overwriting it.  All
    methods are safe to call from download worker threads.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()
        self._lock = threading.Lock()
        self._display: RichProgressDisplay | None = None
        self._task: TaskID | None = None
        self._started = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        with self._lock:
            self._started = True

    def shutdown(self) -> None:
        self.shutdown_bar()
        with self._lock:
            self._started = False
        self.flush()

    def flush(self) -> None:
        with self._lock:
            self.console.file.flush()

    # ------------------------------------------------------------------
    # Bar
    # ------------------------------------------------------------------

    def init_bar(self, count: int, is_bytes: bool) -> None:
        self.shutdown_bar()
        if is_bytes:
            columns = (
                BarColumn(),
                DownloadColumn(),
                TransferSpeedColumn(),
                TimeRemainingColumn(),
            )
        else:
            columns = (BarColumn(), MofNCompleteColumn(), TimeRemainingColumn())
        with self._lock:
            self._display = RichProgressDisplay(
                TextColumn("[progress.description]{task.description}"),
                *columns,
                console=self.console,
                transient=True,
            )
            self._task = self._display.add_task("", total=count)
            self._display.start()

    def shutdown_bar(self) -> None:
        with self._lock:
            if self._display is not None:
                self._display.stop()
            self._display = None
            self._task = None

    def add_bar(self, count: int) -> None:
        with self._lock:
            if self._display is not None and self._task is not None:
                self._display.advance(self._task, count)

    def set_bar(self, count: int) -> None:
        with self._lock:
            if self._display is not None and self._task is not None:
                self._display.update(self._task, completed=count)

    def write(self, data: bytes) -> int:
        self.add_bar(len(data))
        return len(data)

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def printf(self, msg: str, *args: object) -> None:
        text = msg % args if args else msg
        with self._lock:
            self.console.print(text, markup=False, highlight=False, end="")

    def colored_printf(self, msg: str, *args: object) -> None:
        """Print Rich markup (``[green]ok[/green]``) followed by a newline."""
        text = msg % args if args else msg
        with self._lock:
            self.console.print(text, highlight=False)
