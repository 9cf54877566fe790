"""Fixed-capacity history buffer for one metric of one process.

Samples are kept in chronological order, newest at the right end. Appending
to a full buffer evicts the oldest sample in O(1).
"""

from collections import deque

from sparktop.errors import InvariantViolation


class RingBuffer:
    """Ring buffer of float samples."""

    def __init__(self, capacity: int = 600) -> None:
        if capacity < 1:
            raise InvariantViolation(f"ring buffer capacity must be >= 1, got {capacity}")
        self._samples: deque[float] = deque(maxlen=capacity)

    def __len__(self) -> int:
        """Return number of samples in buffer."""
        return len(self._samples)

    @property
    def capacity(self) -> int:
        """Return maximum number of samples the buffer can hold."""
        return self._samples.maxlen or 0

    def push(self, value: float) -> None:
        """Add a sample, evicting the oldest one when full."""
        self._samples.append(value)

    def freeze(self) -> tuple[float, ...]:
        """Return an immutable chronological copy of the contents."""
        return tuple(self._samples)
