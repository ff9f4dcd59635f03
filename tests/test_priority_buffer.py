"""Tests for the priority buffer and priority models."""

from ssort.models import UNMATCHED, BufferedItem, Rank, Unmatched
from ssort.priority_buffer import PriorityBuffer


def make_item(raw: str, priority, clean: str | None = None) -> BufferedItem:
    """Helper to create BufferedItem for testing."""
    return BufferedItem(raw=raw, clean=clean if clean is not None else raw, priority=priority)


class TestPriorities:
    """Tests for Rank and Unmatched ordering."""

    def test_rank_order(self):
        """Lower ranks should sort first."""
        assert Rank(0).sort_key() < Rank(1).sort_key() < Rank(7).sort_key()

    def test_unmatched_after_every_rank(self):
        """Unmatched should sort after any rank."""
        assert Rank(10**9).sort_key() < UNMATCHED.sort_key()

    def test_unmatched_singleton_equality(self):
        """Unmatched instances compare equal."""
        assert Unmatched() == UNMATCHED

    def test_is_highest(self):
        """Only rank 0 is the highest priority."""
        assert Rank(0).is_highest is True
        assert Rank(1).is_highest is False


class TestPriorityBuffer:
    """Tests for PriorityBuffer class."""

    def test_empty_flush(self):
        """Flushing an empty buffer should return nothing."""
        buffer = PriorityBuffer()
        assert buffer.flush() == []

    def test_empty_flush_twice(self):
        """Repeated empty flushes should make no difference."""
        buffer = PriorityBuffer()
        buffer.flush()
        assert buffer.flush() == []
        assert len(buffer) == 0

    def test_sorted_by_rank(self):
        """Flush should order by rank first."""
        buffer = PriorityBuffer()
        buffer.append(make_item("c", Rank(3)))
        buffer.append(make_item("a", Rank(1)))
        buffer.append(make_item("b", Rank(2)))

        assert buffer.flush() == ["a", "b", "c"]

    def test_sorted_by_clean_within_rank(self):
        """Equal ranks should order by clean text."""
        buffer = PriorityBuffer()
        buffer.append(make_item("WARN: memory high", Rank(1)))
        buffer.append(make_item("WARN: INFO_PAD not found", Rank(1)))

        assert buffer.flush() == ["WARN: INFO_PAD not found", "WARN: memory high"]

    def test_sort_uses_clean_returns_raw(self):
        """Sorting uses clean text while raw text is returned."""
        buffer = PriorityBuffer()
        buffer.append(make_item("\x1b[31mzeta\x1b[0m", Rank(1), clean="alpha"))
        buffer.append(make_item("beta", Rank(1)))

        assert buffer.flush() == ["\x1b[31mzeta\x1b[0m", "beta"]

    def test_unmatched_last(self):
        """Unmatched items should come after all ranked items."""
        buffer = PriorityBuffer()
        buffer.append(make_item("aaa", UNMATCHED))
        buffer.append(make_item("zzz", Rank(5)))

        assert buffer.flush() == ["zzz", "aaa"]

    def test_duplicates_keep_arrival_order(self):
        """Items with equal keys keep their insertion order."""
        first = make_item("dup-1", Rank(1), clean="same")
        second = make_item("dup-2", Rank(1), clean="same")
        buffer = PriorityBuffer()
        buffer.append(first)
        buffer.append(second)

        assert buffer.flush() == ["dup-1", "dup-2"]

    def test_flush_empties_buffer(self):
        """After a flush the buffer should be empty and reusable."""
        buffer = PriorityBuffer()
        buffer.append(make_item("a", Rank(1)))
        assert len(buffer) == 1

        buffer.flush()
        assert len(buffer) == 0

        buffer.append(make_item("b", Rank(2)))
        assert buffer.flush() == ["b"]

    def test_output_non_decreasing(self):
        """Flushed output should be non-decreasing by (rank, clean)."""
        buffer = PriorityBuffer()
        items = [
            make_item(
                f"line {i}",
                Rank(i % 3) if i % 4 else UNMATCHED,
                clean=f"line {i % 7}",
            )
            for i in range(40)
        ]
        for item in items:
            buffer.append(item)

        keys = {item.raw: item.sort_key() for item in items}
        flushed = buffer.flush()
        assert len(flushed) == len(items)
        ordered = [keys[raw] for raw in flushed]
        assert ordered == sorted(ordered)
