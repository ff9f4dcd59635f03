"""Filter matching for incoming lines."""

import re
from typing import Pattern, Sequence

from .models import Rank, RunConfig


# ANSI SGR sequences: ESC [ <digits/semicolons> m
ANSI_PATTERN = re.compile(r"\x1b\[[0-9;]*m")


class FilterPatternError(Exception):
    """Error compiling a word-boundary pattern for a filter."""

    def __init__(self, filter_text: str, reason: str):
        self.filter_text = filter_text
        super().__init__(f"Invalid filter pattern '{filter_text}': {reason}")


def strip_ansi(line: str) -> str:
    """Remove ANSI color codes from a line."""
    return ANSI_PATTERN.sub("", line)


class Matcher:
    """Classify lines against an ordered filter list.

    Among all filters found in a line the longest one wins; filters of
    equal length resolve to the earliest position in the list.
    Length is measured in UTF-8 bytes.

    Attributes:
        filters: Filters as they are matched (case-folded if ignore_case).
        ignore_case: Whether lines and filters are case-folded.
        word_boundary: Whether filters only match whole words.
    """

    def __init__(
        self,
        filters: Sequence[str],
        ignore_case: bool = False,
        word_boundary: bool = False,
    ) -> None:
        self.ignore_case = ignore_case
        self.word_boundary = word_boundary
        self.filters: list[str] = [
            f.lower() if ignore_case else f for f in filters
        ]
        self._lengths = [len(f.encode("utf-8", errors="replace")) for f in self.filters]
        self._patterns: list[Pattern[str]] = []

        if word_boundary:
            for f in self.filters:
                try:
                    self._patterns.append(re.compile(r"\b" + re.escape(f) + r"\b"))
                except re.error as e:
                    raise FilterPatternError(f, str(e)) from e

    @classmethod
    def from_config(cls, config: RunConfig) -> "Matcher":
        return cls(
            config.filters,
            ignore_case=config.ignore_case,
            word_boundary=config.word_boundary,
        )

    def normalize(self, line: str, color: bool = False) -> str:
        """Build the clean text used for matching and sorting.

        Args:
            line: The raw line.
            color: Strip ANSI color codes first.

        Returns:
            The line, color-stripped and case-folded as configured.
        """
        if color:
            line = strip_ansi(line)
        if self.ignore_case:
            line = line.lower()
        return line

    def classify(self, clean: str) -> Rank | None:
        """Find the rank of the filter that best matches a line.

        Args:
            clean: Normalized line text (see normalize()).

        Returns:
            Rank of the longest matching filter, or None if nothing matches.
        """
        best: int | None = None
        best_len = 0

        for index, f in enumerate(self.filters):
            if self.word_boundary:
                matched = self._patterns[index].search(clean) is not None
            else:
                matched = f in clean

            # Strictly greater keeps the earliest filter on ties
            if matched and self._lengths[index] > best_len:
                best = index
                best_len = self._lengths[index]

        return Rank(best) if best is not None else None
