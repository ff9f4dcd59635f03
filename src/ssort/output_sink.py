"""Output destination and the writer thread feeding it."""

import sys
import threading
from pathlib import Path
from queue import Queue
from typing import Callable, TextIO

# Capacity of the output queue; a full queue blocks the reorderer.
DEFAULT_QUEUE_SIZE = 100

_CLOSE = object()


class OutputFile:
    """Open the --output destination for the duration of a run.

    "stdout" and "stderr" name the process streams, which are returned
    as-is and never closed. Anything else is a path opened for writing as
    UTF-8; characters that can't be encoded are replaced.

    Usage:
        with OutputFile("sorted.log") as stream:
            sink = OutputSink(stream)
    """

    def __init__(self, path: str = "stdout"):
        self.path = path
        self._opened: TextIO | None = None

    def __enter__(self) -> TextIO:
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False  # Don't suppress exceptions

    def open(self) -> TextIO:
        """Open the destination and return a text stream for it.

        Raises:
            OSError: If a file can't be opened.
        """
        if self.path == "stdout":
            return sys.stdout
        if self.path == "stderr":
            return sys.stderr
        self._opened = open(Path(self.path), "w", encoding="utf-8", errors="replace")
        return self._opened

    def close(self) -> None:
        """Close the stream if this object opened it."""
        if self._opened is not None:
            self._opened.close()
            self._opened = None


class OutputSink:
    """Write lines on a dedicated thread, honoring an optional budget.

    Lines sent with emit() count against the budget. Once it is used up
    they are discarded, but the queue keeps draining so the producer never
    blocks on a sink that stopped writing. Lines sent with passthrough()
    are never counted and always written.

    A write error, such as a closed pipe or text the stream can't encode,
    stops all writing; the error goes to `on_error` and the queue keeps
    draining.

    Attributes:
        remaining: Counted lines still allowed, or None for no budget.
        written: Lines written so far.
        discarded: Lines drained without writing.
        error: The write error that stopped the sink, if any.
    """

    def __init__(
        self,
        stream: TextIO,
        budget: int | None = None,
        maxsize: int = DEFAULT_QUEUE_SIZE,
        on_error: Callable[[Exception], None] | None = None,
    ) -> None:
        self.stream = stream
        self.remaining = budget
        self.written = 0
        self.discarded = 0
        self.error: Exception | None = None
        self._on_error = on_error
        self._queue: Queue = Queue(maxsize=maxsize)
        self._thread = threading.Thread(
            target=self._run, name="ssort-sink", daemon=True
        )

    @property
    def exhausted(self) -> bool:
        return self.remaining is not None and self.remaining <= 0

    def start(self) -> None:
        self._thread.start()

    def emit(self, line: str) -> None:
        """Queue a line that counts against the budget."""
        self._queue.put((line, True))

    def passthrough(self, line: str) -> None:
        """Queue a line that bypasses the budget."""
        self._queue.put((line, False))

    def close(self) -> None:
        """Signal that no more lines will be queued."""
        self._queue.put(_CLOSE)

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout)

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is _CLOSE:
                break

            line, counted = item
            if self.error is not None or (counted and self.exhausted):
                self.discarded += 1
                continue

            try:
                self._write(line)
            except (OSError, ValueError) as e:
                self.error = e
                self.discarded += 1
                if self._on_error is not None:
                    self._on_error(e)
                continue

            self.written += 1
            if counted and self.remaining is not None:
                self.remaining -= 1

    def _write(self, line: str) -> None:
        self.stream.write(line)
        self.stream.write("\n")
        self.stream.flush()
