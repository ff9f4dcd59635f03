"""Background reader feeding raw lines into a bounded queue."""

import io
import subprocess
import sys
import threading
from queue import Queue
from typing import BinaryIO, Callable, Iterable, Sequence, TextIO, cast

# Capacity of the input queue; a full queue blocks the reader.
DEFAULT_QUEUE_SIZE = 100

# Put on the queue once after the last line.
END_OF_STREAM = object()


class SourceStartError(Exception):
    """Error starting the command whose output is sorted."""


def decode_lines(binary: BinaryIO) -> TextIO:
    """Wrap a byte stream as UTF-8 text, replacing undecodable bytes."""
    return io.TextIOWrapper(binary, encoding="utf-8", errors="replace")


def strip_line_ending(line: str) -> str:
    """Remove a trailing newline and one carriage return."""
    if line.endswith("\n"):
        line = line[:-1]
    if line.endswith("\r"):
        line = line[:-1]
    return line


class LineSource:
    """Read lines on a daemon thread and hand them over through a queue.

    The sequence is lazy, possibly endless and can't be restarted. A read
    error ends it early: lines already queued are kept, the error is passed
    to `on_error` and END_OF_STREAM follows as usual.

    Attributes:
        queue: Bounded queue of lines, terminated by END_OF_STREAM.
        process: The spawned process when reading a command's output.
        error: The read error that ended the stream, if any.

    Usage:
        source = LineSource.from_stdin()
        source.start()
        while (line := source.get()) is not END_OF_STREAM:
            ...
    """

    def __init__(
        self,
        reader: Iterable[str],
        process: subprocess.Popen | None = None,
        maxsize: int = DEFAULT_QUEUE_SIZE,
        on_error: Callable[[Exception], None] | None = None,
    ) -> None:
        self.queue: Queue = Queue(maxsize=maxsize)
        self.process = process
        self.error: Exception | None = None
        self._reader = reader
        self._on_error = on_error
        self._thread = threading.Thread(
            target=self._run, name="ssort-source", daemon=True
        )

    @classmethod
    def from_stream(cls, stream: TextIO, **kwargs) -> "LineSource":
        """Read lines from an open text stream such as stdin."""
        return cls(stream, **kwargs)

    @classmethod
    def from_stdin(cls, **kwargs) -> "LineSource":
        """Read lines from stdin. Undecodable bytes are replaced."""
        buffer = getattr(sys.stdin, "buffer", None)
        if buffer is None:
            return cls.from_stream(sys.stdin, **kwargs)
        return cls.from_stream(decode_lines(buffer), **kwargs)

    @classmethod
    def from_command(cls, argv: Sequence[str], **kwargs) -> "LineSource":
        """Spawn a command and read lines from its stdout.

        The command inherits stderr. Undecodable output is replaced rather
        than treated as a read error.

        Raises:
            SourceStartError: If argv is empty or the command can't start.
        """
        if not argv:
            raise SourceStartError("Empty executable command")

        try:
            process = subprocess.Popen(
                list(argv),
                stdout=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,  # Line buffered
            )
        except OSError as e:
            raise SourceStartError(
                f"Error starting command '{' '.join(argv)}': {e}"
            ) from e

        return cls(cast(TextIO, process.stdout), process=process, **kwargs)

    def start(self) -> None:
        self._thread.start()

    def get(self, timeout: float | None = None) -> object:
        """Take the next line or END_OF_STREAM.

        Raises:
            queue.Empty: If nothing arrived within `timeout` seconds.
        """
        return self.queue.get(timeout=timeout)

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout)

    def terminate(self) -> None:
        """Stop a spawned command that is still running."""
        if self.process is not None and self.process.poll() is None:
            self.process.terminate()

    def _run(self) -> None:
        try:
            for raw in self._reader:
                self.queue.put(strip_line_ending(raw))
        except (OSError, UnicodeDecodeError) as e:
            self.error = e
            if self._on_error is not None:
                self._on_error(e)
        finally:
            if self.process is not None:
                # Exit status is ignored; only the output matters
                if self.process.stdout is not None:
                    self.process.stdout.close()
                self.process.wait()
            self.queue.put(END_OF_STREAM)
