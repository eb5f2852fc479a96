"""Fixed-capacity ring buffer backed by a numpy array.

Rolling windows (keystroke cadence, recent accuracy) must never grow without
bound, and their statistics are recomputed on every keystroke. Storing the
samples in a preallocated numpy array keeps appends O(1) and lets mean and
standard deviation run vectorized over the live slice.
"""

from typing import Iterator

import numpy as np
from numpy.typing import NDArray


class RingBuffer:
    """Fixed-capacity FIFO of floats; the oldest sample is overwritten when full."""

    def __init__(self, capacity: int, dtype: type = np.float64):
        if capacity <= 0:
            raise ValueError("RingBuffer capacity must be positive")
        self._data: NDArray = np.zeros(capacity, dtype=dtype)
        self._capacity = capacity
        self._start = 0
        self._size = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def is_full(self) -> bool:
        return self._size == self._capacity

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> Iterator[float]:
        return iter(self.values().tolist())

    def append(self, value: float) -> None:
        """Add a sample, evicting the oldest one if the buffer is full."""
        end = (self._start + self._size) % self._capacity
        self._data[end] = value
        if self._size < self._capacity:
            self._size += 1
        else:
            self._start = (self._start + 1) % self._capacity

    def values(self) -> NDArray:
        """Return the samples oldest-first as a new array."""
        if self._size == 0:
            return self._data[:0].copy()
        indices = (self._start + np.arange(self._size)) % self._capacity
        return self._data[indices]

    def last(self) -> float:
        """Return the most recent sample."""
        if self._size == 0:
            raise IndexError("last() on empty RingBuffer")
        return float(self._data[(self._start + self._size - 1) % self._capacity])

    def mean(self) -> float:
        """Mean of the live samples (0.0 when empty)."""
        if self._size == 0:
            return 0.0
        return float(np.mean(self.values()))

    def std(self) -> float:
        """Population standard deviation of the live samples (0.0 when empty)."""
        if self._size == 0:
            return 0.0
        return float(np.std(self.values()))

    def clear(self) -> None:
        self._start = 0
        self._size = 0

    def __repr__(self) -> str:
        return f"RingBuffer(capacity={self._capacity}, values={self.values().tolist()})"
