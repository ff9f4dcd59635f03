"""Data models for ssort."""

from dataclasses import dataclass, field
from enum import Enum, auto


# --- Priorities ---

@dataclass(frozen=True)
class Rank:
    """Priority of a line that matched a filter.

    Attributes:
        index: Position of the filter in the filter list (0 is highest).
    """
    index: int

    @property
    def is_highest(self) -> bool:
        """Rank 0 lines bypass the buffer."""
        return self.index == 0

    def sort_key(self) -> tuple[int, int]:
        return (0, self.index)


@dataclass(frozen=True)
class Unmatched:
    """Priority of a line that matched no filter.

    Always sorts after every Rank.
    """

    def sort_key(self) -> tuple[int, int]:
        return (1, 0)


UNMATCHED = Unmatched()

# Union type for buffered priorities
Priority = Rank | Unmatched


@dataclass(frozen=True)
class BufferedItem:
    """A line waiting in the priority buffer.

    Attributes:
        raw: The original line, including any color codes.
        clean: The line used for matching and sorting.
        priority: Rank of the matching filter, or UNMATCHED.
    """
    raw: str
    clean: str
    priority: Priority

    def sort_key(self) -> tuple[tuple[int, int], str]:
        return (self.priority.sort_key(), self.clean)


# --- Run configuration ---

DEFAULT_TIMEOUT = 0.5


@dataclass(frozen=True)
class RunConfig:
    """Merged configuration for one run.

    Built once by the CLI from defaults, the filter file and the command
    line, then read by the matcher, the reorderer and the flush scheduler.

    Attributes:
        filters: Ordered filter strings; rank is the position.
        ignore_case: Case-fold lines and filters before matching.
        word_boundary: Only match whole words.
        only_matching: Drop lines that match no filter.
        keep_unmatched: Emit unmatched lines immediately, unsorted.
        limit: Count-trigger threshold and output budget (0 disables both).
        timeout: Flush interval in seconds.
        color: Strip ANSI color codes before matching and sorting.
        exec_command: Command whose output is sorted instead of stdin.
    """
    filters: tuple[str, ...] = field(default_factory=tuple)
    ignore_case: bool = False
    word_boundary: bool = False
    only_matching: bool = False
    keep_unmatched: bool = False
    limit: int = 0
    timeout: float = DEFAULT_TIMEOUT
    color: bool = False
    exec_command: str | None = None

    @property
    def budget(self) -> int | None:
        """Number of counted lines the sink may write, or None if unlimited."""
        return self.limit if self.limit > 0 else None


# --- Routing ---

class Route(Enum):
    """What happened to an incoming line.

    IMMEDIATE: Matched the first filter, sent straight to the sink
    PASSTHROUGH: Unmatched, sent straight to the sink (keep-going mode)
    DROPPED: Unmatched, discarded (only-matching mode)
    BUFFERED: Held in the priority buffer until the next flush
    """
    IMMEDIATE = auto()
    PASSTHROUGH = auto()
    DROPPED = auto()
    BUFFERED = auto()


class FlushTrigger(Enum):
    """What caused a flush of the priority buffer."""
    TIMER = "timer"
    LIMIT = "limit"
    FINAL = "final"


@dataclass
class RouteResult:
    """Result of routing one line."""
    line: str
    route: Route
    priority: Priority
