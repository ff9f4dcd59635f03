"""Holding area for lines waiting to be emitted in priority order."""

from .models import BufferedItem


class PriorityBuffer:
    """Collect buffered items and release them sorted on flush.

    Insertion order carries no meaning; a flush sorts by priority, then by
    clean text. The sort is stable, so exact duplicates keep arrival order.
    """

    def __init__(self) -> None:
        self._items: list[BufferedItem] = []

    def __len__(self) -> int:
        return len(self._items)

    def append(self, item: BufferedItem) -> None:
        self._items.append(item)

    def flush(self) -> list[str]:
        """Empty the buffer.

        Returns:
            Raw lines in priority order. Empty if nothing was buffered.
        """
        if not self._items:
            return []

        ordered = [item.raw for item in sorted(self._items, key=BufferedItem.sort_key)]
        self._items.clear()
        return ordered
