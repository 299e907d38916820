"""Thread-safe sample storage for a recording."""
import threading
from typing import Optional
import numpy as np


class SampleBuffer:
    """
    Append-only float32 sample arena guarded by a single lock.

    Capacity grows by doubling so appends stay amortized O(block). Readers
    always get copies, never views into the arena, so a concurrent append
    can't tear what they read.
    """

    def __init__(self, initial_capacity: int = 16000 * 10):
        """
        Initialize the buffer.

        Args:
            initial_capacity: Samples preallocated up front (10 s at 16 kHz by default)
        """
        self._data = np.zeros(max(int(initial_capacity), 1), dtype=np.float32)
        self._length = 0
        self._emitted = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return self._length

    def _reserve(self, needed: int) -> None:
        # Caller holds the lock
        capacity = self._data.size
        if needed <= capacity:
            return
        while capacity < needed:
            capacity *= 2
        grown = np.zeros(capacity, dtype=np.float32)
        grown[:self._length] = self._data[:self._length]
        self._data = grown

    def append_and_take_chunk(self, samples: np.ndarray, min_new: int) -> Optional[tuple[np.ndarray, int]]:
        """
        Append, then take a cumulative chunk if at least ``min_new`` samples
        arrived since the last one, all under one lock acquisition. A
        ``min_new`` of zero only appends.

        Taking a chunk moves the emitted mark to the current length, so one
        cadence boundary can never produce two chunks.

        Returns:
            (copy of every sample, index where the new samples start) or None
        """
        with self._lock:
            count = samples.size
            if count:
                self._reserve(self._length + count)
                self._data[self._length:self._length + count] = samples
                self._length += count
            if min_new <= 0 or self._length - self._emitted < min_new:
                return None
            new_start = self._emitted
            self._emitted = self._length
            return self._data[:self._length].copy(), new_start

    def drain(self) -> np.ndarray:
        """Copy out every sample and empty the buffer."""
        with self._lock:
            samples = self._data[:self._length].copy()
            self._length = 0
            self._emitted = 0
            return samples

    def clear(self) -> None:
        """Discard all samples (capacity is kept)."""
        with self._lock:
            self._length = 0
            self._emitted = 0
