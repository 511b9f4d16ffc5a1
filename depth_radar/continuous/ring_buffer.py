"""
Ring Buffer - Fixed-size circular buffer for detection history.

O(1) append with oldest-first eviction once the buffer is full.
"""

from typing import Generic, Iterable, Iterator, List, Optional, Tuple, TypeVar

T = TypeVar('T')


class RingBuffer(Generic[T]):
    """
    Fixed-size circular buffer with O(1) operations.

    When full, oldest items are overwritten.

    Example:
        buf = RingBuffer[int](maxlen=3)
        buf.extend([1, 2, 3, 4])
        buf.snapshot()  # (2, 3, 4)
    """

    __slots__ = ('_buffer', '_maxlen', '_head', '_size')

    def __init__(self, maxlen: int):
        """
        Initialize ring buffer.

        Args:
            maxlen: Maximum number of elements (must be > 0)
        """
        if maxlen <= 0:
            raise ValueError("maxlen must be positive")
        self._buffer: List[Optional[T]] = [None] * maxlen
        self._maxlen = maxlen
        self._head = 0  # Next write position
        self._size = 0

    def append(self, item: T) -> bool:
        """Append item. Returns True if the oldest item was evicted. O(1)."""
        evicted = self._size == self._maxlen
        self._buffer[self._head] = item
        self._head = (self._head + 1) % self._maxlen
        if not evicted:
            self._size += 1
        return evicted

    def extend(self, items: Iterable[T]) -> int:
        """Append multiple items in order. Returns the number evicted."""
        return sum(1 for item in items if self.append(item))

    def __len__(self) -> int:
        return self._size

    def __bool__(self) -> bool:
        return self._size > 0

    def __getitem__(self, index: int) -> T:
        """
        Get item by index. Supports negative indexing.

        buf[0] = oldest item
        buf[-1] = newest item
        """
        if index < 0:
            index = self._size + index

        if index < 0 or index >= self._size:
            raise IndexError(f"index {index} out of range for size {self._size}")

        start = (self._head - self._size) % self._maxlen
        return self._buffer[(start + index) % self._maxlen]  # type: ignore[return-value]

    def __iter__(self) -> Iterator[T]:
        """Iterate from oldest to newest."""
        for i in range(self._size):
            yield self[i]

    @property
    def maxlen(self) -> int:
        """Maximum buffer capacity."""
        return self._maxlen

    @property
    def is_full(self) -> bool:
        return self._size == self._maxlen

    def clear(self) -> None:
        """Clear all items."""
        self._buffer = [None] * self._maxlen
        self._head = 0
        self._size = 0

    def snapshot(self) -> Tuple[T, ...]:
        """Immutable copy, oldest first."""
        return tuple(self)

    def newest(self) -> Optional[T]:
        """Get newest item or None if empty."""
        return self[-1] if self._size > 0 else None

    def oldest(self) -> Optional[T]:
        """Get oldest item or None if empty."""
        return self[0] if self._size > 0 else None
