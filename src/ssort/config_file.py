"""Parser for ssort filter files and related option values."""

import os
import re
import shlex
from dataclasses import dataclass, field
from pathlib import Path


class FilterFileError(Exception):
    """Error parsing a filter file."""

    def __init__(self, message: str, line_number: int | None = None):
        self.line_number = line_number
        if line_number:
            super().__init__(f"Line {line_number}: {message}")
        else:
            super().__init__(message)


class DurationError(ValueError):
    """Error parsing a duration such as "500ms"."""


@dataclass
class FilterFile:
    """Parsed filter file.

    Attributes:
        args: Option tokens from the argument line (may be empty).
        filters: Filters in file order; rank is the position.
    """
    args: list[str] = field(default_factory=list)
    filters: list[str] = field(default_factory=list)


def parse_filter_file(path: Path) -> FilterFile:
    """Parse a filter file from disk.

    Args:
        path: Path to the filter file.

    Returns:
        Parsed FilterFile.

    Raises:
        OSError: If the file can't be read.
        FilterFileError: If the argument line can't be tokenized.
    """
    content = path.read_text(encoding="utf-8")
    return parse_filter_content(content)


def parse_filter_content(content: str) -> FilterFile:
    """Parse filter file content from a string.

    Format:
        - Lines starting with # (after leading whitespace) are comments
        - If the first remaining line starts with "-", or with a space or
          tab, it is an argument line holding options
        - An argument line ending in a backslash continues on the next line
        - Every other non-blank line is a filter; surrounding whitespace
          is trimmed

    Args:
        content: The raw content of a filter file.

    Returns:
        Parsed FilterFile.

    Raises:
        FilterFileError: If the argument line has unbalanced quotes.
    """
    lines = [
        (line_number, line)
        for line_number, line in enumerate(content.splitlines(), start=1)
        if not line.strip().startswith("#")
    ]
    if not lines:
        return FilterFile()

    result = FilterFile()
    start = 0

    if _is_arg_line(lines[0][1]):
        pieces: list[str] = []
        for index, (_, line) in enumerate(lines):
            text = line.strip()
            continued = text.endswith("\\")
            if continued:
                text = text[:-1]
            if text:
                pieces.append(text.strip())
            start = index + 1
            if not continued:
                break

        try:
            result.args = shlex.split(" ".join(pieces))
        except ValueError as e:
            raise FilterFileError(
                f"Invalid argument line: {e}", line_number=lines[0][0]
            ) from e

    for _, line in lines[start:]:
        text = line.strip()
        if text:
            result.filters.append(text)

    return result


def _is_arg_line(line: str) -> bool:
    return line.strip().startswith("-") or line[:1] in (" ", "\t")


def split_filters(value: str | None) -> list[str]:
    """Split a comma separated filter list, dropping blank entries."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


# --- Durations ---

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(text: str) -> float:
    """Parse a Go-style duration into seconds.

    Accepts sequences of number/unit pairs such as "500ms", "1.5s" or
    "1m30s", and a bare "0".

    Raises:
        DurationError: If the text isn't a valid duration.
    """
    value = text.strip()
    sign = 1.0
    if value[:1] in ("+", "-"):
        sign = -1.0 if value[0] == "-" else 1.0
        value = value[1:]

    if value == "0":
        return 0.0
    if not value:
        raise DurationError(f"Invalid duration: {text!r}")

    total = 0.0
    pos = 0
    while pos < len(value):
        match = _DURATION_PART.match(value, pos)
        if match is None:
            raise DurationError(f"Invalid duration: {text!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()

    return sign * total


# --- Exec command ---

def expand(token: str) -> str:
    """Expand environment variables and a leading tilde in a token."""
    return os.path.expanduser(os.path.expandvars(token))


def command_argv(command: str) -> list[str]:
    """Split an --exec command into an expanded argument vector.

    Raises:
        ValueError: If the command has unbalanced quotes.
    """
    return [expand(token) for token in shlex.split(command)]
