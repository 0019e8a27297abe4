"""
ring_buffer.py

Fixed-capacity FIFO storage for the Doppler engine.

Both the sliding sample window and the spectrogram history are index-addressed
ring buffers: a preallocated numpy array plus a write index and a fill count.
Pushing overwrites the oldest slot once the buffer is full, so a push is O(1)
and never reallocates. Reads return ordered (oldest -> newest) read-only
copies; callers never see the live storage.
"""

from typing import Tuple

import numpy as np

from contracts.spectral import SpectralColumn
from contracts.validation import (
    ConfigurationError,
    ValidationError,
    validate_int_at_least,
)


class RingBuffer:
    """
    Fixed-capacity circular buffer of equally shaped items.

    Parameters
    ----------
    capacity : int
        Maximum number of items held. Must be >= 1.
    item_shape : Tuple[int, ...], optional
        Shape of one item. Defaults to () (scalar items).
    dtype : numpy dtype, optional
        Storage dtype. Defaults to float64.

    Attributes
    ----------
    capacity : int
        Maximum number of items held.
    item_shape : Tuple[int, ...]
        Shape of one item.
    """

    def __init__(
        self,
        capacity: int,
        item_shape: Tuple[int, ...] = (),
        dtype: type = np.float64,
    ) -> None:
        validate_int_at_least(capacity, 1, "capacity", error=ConfigurationError)
        self._capacity = int(capacity)
        self._item_shape = tuple(item_shape)
        self._data = np.zeros((self._capacity,) + self._item_shape, dtype=dtype)
        self._write_idx = 0
        self._count = 0

    @property
    def capacity(self) -> int:
        """Maximum number of items held."""
        return self._capacity

    @property
    def item_shape(self) -> Tuple[int, ...]:
        """Shape of one item."""
        return self._item_shape

    def __len__(self) -> int:
        return self._count

    def is_full(self) -> bool:
        """True once the buffer holds ``capacity`` items."""
        return self._count == self._capacity

    def push(self, item) -> bool:
        """
        Append an item, overwriting the oldest one if full.

        Parameters
        ----------
        item : scalar or array-like
            Value matching ``item_shape``.

        Returns
        -------
        bool
            True if an older item was evicted to make room.

        Raises
        ------
        ValidationError
            If the item does not match ``item_shape``.
        """
        value = np.asarray(item, dtype=self._data.dtype)
        if value.shape != self._item_shape:
            raise ValidationError(
                f"item shape {value.shape} does not match buffer item shape {self._item_shape}"
            )

        evicted = self._count == self._capacity
        self._data[self._write_idx] = value
        self._write_idx = (self._write_idx + 1) % self._capacity
        if not evicted:
            self._count += 1
        return evicted

    def _ordered(self) -> np.ndarray:
        if self._count == 0:
            return np.empty((0,) + self._item_shape, dtype=self._data.dtype)
        start = (self._write_idx - self._count) % self._capacity
        if start + self._count <= self._capacity:
            return self._data[start:start + self._count].copy()
        first = self._capacity - start
        return np.concatenate(
            (self._data[start:], self._data[: self._count - first]), axis=0
        )

    def snapshot(self) -> np.ndarray:
        """
        Ordered copy of the current contents.

        Returns
        -------
        np.ndarray
            Read-only array of shape (len(self),) + item_shape, oldest first.
        """
        ordered = self._ordered()
        ordered.flags.writeable = False
        return ordered

    def latest(self):
        """Most recently pushed item, or None when empty."""
        if self._count == 0:
            return None
        value = self._data[(self._write_idx - 1) % self._capacity]
        if self._item_shape:
            value = value.copy()
            value.flags.writeable = False
            return value
        return value.item()

    def clear(self) -> None:
        """Drop all items without reallocating."""
        self._data[...] = 0
        self._write_idx = 0
        self._count = 0


class SlidingWindow(RingBuffer):
    """
    Sliding window of scalar amplitude samples.

    Parameters
    ----------
    window_size : int
        Window length in samples. Must be >= 2 so that the Hann taper and
        the transform are well defined.
    """

    def __init__(self, window_size: int) -> None:
        validate_int_at_least(window_size, 2, "window_size", error=ConfigurationError)
        super().__init__(window_size)

    @property
    def window_size(self) -> int:
        """Window length in samples."""
        return self.capacity

    def push(self, sample: float) -> bool:
        """Append one amplitude sample; evicts the oldest when full."""
        return super().push(float(sample))


class SpectrogramHistory:
    """
    Bounded, time-ordered history of spectral columns.

    Column values live in a (history, n_bins) ring; timestamps and sequence
    numbers live in parallel rings. SpectralColumn objects are not retained,
    so nothing outside the history references an evicted column's storage.

    Parameters
    ----------
    history : int
        Maximum number of retained columns. Must be >= 1.
    n_bins : int
        Length of every column. Fixed for the lifetime of the history.
    """

    def __init__(self, history: int, n_bins: int) -> None:
        validate_int_at_least(history, 1, "history", error=ConfigurationError)
        validate_int_at_least(n_bins, 1, "n_bins", error=ConfigurationError)
        self._values = RingBuffer(history, item_shape=(int(n_bins),))
        self._timestamps = RingBuffer(history)
        self._sequences = RingBuffer(history, dtype=np.int64)

    @property
    def history(self) -> int:
        """Maximum number of retained columns."""
        return self._values.capacity

    @property
    def n_bins(self) -> int:
        """Length of every column."""
        return self._values.item_shape[0]

    def __len__(self) -> int:
        return len(self._values)

    def is_full(self) -> bool:
        return self._values.is_full()

    def push(self, column: SpectralColumn) -> bool:
        """
        Append a column, evicting the oldest if the history is full.

        Returns
        -------
        bool
            True if a column was evicted.

        Raises
        ------
        ValidationError
            If the column length differs from ``n_bins``.
        """
        if column.n_bins != self.n_bins:
            raise ValidationError(
                f"column has {column.n_bins} bins, history expects {self.n_bins}"
            )
        evicted = self._values.push(column.values)
        self._timestamps.push(column.timestamp)
        self._sequences.push(column.sequence)
        return evicted

    def matrix(self) -> np.ndarray:
        """
        Time x frequency view of the history.

        Returns
        -------
        np.ndarray
            Read-only copy of shape (len(self), n_bins). Row 0 is the oldest
            column; column 0 is the DC bin.
        """
        return self._values.snapshot()

    def timestamps(self) -> np.ndarray:
        """Per-row column timestamps, oldest first."""
        return self._timestamps.snapshot()

    def sequences(self) -> np.ndarray:
        """Per-row column sequence numbers, oldest first."""
        return self._sequences.snapshot()

    def latest(self):
        """Newest column values, or None when empty."""
        return self._values.latest()

    def clear(self) -> None:
        self._values.clear()
        self._timestamps.clear()
        self._sequences.clear()
