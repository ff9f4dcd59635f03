"""Event loop that reorders a line stream by filter priority."""

import time
from queue import Empty
from typing import Callable

from .flush_scheduler import FlushScheduler
from .line_source import END_OF_STREAM, LineSource
from .matcher import Matcher
from .models import (
    UNMATCHED,
    BufferedItem,
    FlushTrigger,
    Rank,
    Route,
    RouteResult,
    RunConfig,
)
from .output_sink import OutputSink
from .priority_buffer import PriorityBuffer


class Reorderer:
    """Route lines to the sink, holding lower priorities back for sorting.

    Routing per line:
    1. Matches the first filter -> emitted immediately
    2. Matches no filter -> dropped (only-matching), emitted immediately
       without counting (keep-unmatched), or buffered after everything else
    3. Matches a later filter -> buffered at that filter's rank

    The buffer is flushed when the timer fires, when `limit` prioritized
    matches accumulated, and once more when the input ends.

    Buffer, counter and timer are only touched by the thread calling run().

    Attributes:
        config: The merged run configuration.
        sink: Output sink receiving lines in emission order.
        prioritized_count: Prioritized matches since the last flush.
        stats: Routing and flush statistics.
    """

    def __init__(
        self,
        config: RunConfig,
        sink: OutputSink,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self.sink = sink
        self.matcher = Matcher.from_config(config)
        self.buffer = PriorityBuffer()
        self.scheduler = FlushScheduler(config.timeout, clock=clock)
        self.prioritized_count = 0
        self.stats = RouteStats()

    def route(self, line: str) -> RouteResult:
        """Classify one line and send it on its way.

        Args:
            line: Raw input line without its line ending.

        Returns:
            RouteResult describing what happened to the line.
        """
        clean = self.matcher.normalize(line, color=self.config.color)
        rank = self.matcher.classify(clean)

        if rank is None:
            result = self._route_unmatched(line, clean)
            self.stats.record(result)
            return result

        self.prioritized_count += 1

        if rank.is_highest:
            self.sink.emit(line)
            result = RouteResult(line=line, route=Route.IMMEDIATE, priority=rank)
            self.stats.record(result)
            return result

        self.buffer.append(BufferedItem(raw=line, clean=clean, priority=rank))
        result = RouteResult(line=line, route=Route.BUFFERED, priority=rank)
        self.stats.record(result)

        if self.config.limit > 0 and self.prioritized_count >= self.config.limit:
            self.flush(FlushTrigger.LIMIT)

        return result

    def _route_unmatched(self, line: str, clean: str) -> RouteResult:
        if self.config.only_matching:
            return RouteResult(line=line, route=Route.DROPPED, priority=UNMATCHED)

        if self.config.keep_unmatched:
            self.sink.passthrough(line)
            return RouteResult(line=line, route=Route.PASSTHROUGH, priority=UNMATCHED)

        self.buffer.append(BufferedItem(raw=line, clean=clean, priority=UNMATCHED))
        return RouteResult(line=line, route=Route.BUFFERED, priority=UNMATCHED)

    def flush(self, trigger: FlushTrigger = FlushTrigger.TIMER) -> int:
        """Send the buffered lines to the sink in priority order.

        An empty buffer is left alone: no output, no counter reset and the
        timer keeps its schedule.

        Returns:
            Number of lines flushed.
        """
        lines = self.buffer.flush()
        if not lines:
            return 0

        for line in lines:
            self.sink.emit(line)

        self.prioritized_count = 0
        self.scheduler.arm()
        self.stats.record_flush(trigger, len(lines))
        return len(lines)

    def tick(self) -> None:
        """Handle a timer tick."""
        if not self.flush(FlushTrigger.TIMER):
            self.scheduler.advance()

    def run(self, source: LineSource) -> None:
        """Consume the source until it ends, then shut down.

        The source and the sink must already be started. On END_OF_STREAM a
        final flush runs, the sink is closed and drained, and the source
        thread is joined.
        """
        self.scheduler.arm()

        while True:
            if self.scheduler.is_due():
                self.tick()
                continue

            try:
                line = source.get(timeout=self.scheduler.remaining())
            except Empty:
                continue

            if line is END_OF_STREAM:
                break
            self.route(line)

        self.flush(FlushTrigger.FINAL)
        self.scheduler.disarm()

        self.sink.close()
        self.sink.join()
        source.join()


class RouteStats:
    """Statistics tracker for a reordering run.

    Useful for checking how filters split the stream and what drives flushes.
    """

    def __init__(self) -> None:
        self.total_lines: int = 0
        self.route_counts: dict[Route, int] = {route: 0 for route in Route}
        self.flush_counts: dict[FlushTrigger, int] = {
            trigger: 0 for trigger in FlushTrigger
        }
        self.flushed_lines: int = 0
        self.rank_counts: dict[int, int] = {}

    def record(self, result: RouteResult) -> None:
        """Record a routed line."""
        self.total_lines += 1
        self.route_counts[result.route] += 1

        if isinstance(result.priority, Rank):
            index = result.priority.index
            self.rank_counts[index] = self.rank_counts.get(index, 0) + 1

    def record_flush(self, trigger: FlushTrigger, lines: int) -> None:
        """Record a non-empty flush."""
        self.flush_counts[trigger] += 1
        self.flushed_lines += lines

    @property
    def matched_lines(self) -> int:
        return sum(self.rank_counts.values())

    def summary(self, filters: tuple[str, ...] = ()) -> str:
        """Generate a summary string of the run."""
        lines = [
            f"Total lines: {self.total_lines}",
            f"Matched: {self.matched_lines}",
            f"Immediate: {self.route_counts[Route.IMMEDIATE]}",
            f"Buffered: {self.route_counts[Route.BUFFERED]}",
            f"Passthrough: {self.route_counts[Route.PASSTHROUGH]}",
            f"Dropped: {self.route_counts[Route.DROPPED]}",
            "Flushes: "
            + ", ".join(
                f"{trigger.value}={count}"
                for trigger, count in self.flush_counts.items()
            ),
        ]

        if self.rank_counts:
            lines.append("\nMatches per filter:")
            for index, count in sorted(self.rank_counts.items()):
                name = filters[index] if index < len(filters) else f"#{index}"
                lines.append(f"  {index}: {name}: {count}")

        return "\n".join(lines)
