"""
contracts/spectral.py

Spectral data contracts produced by the Doppler engine.

Defines:
- SpectralColumn: one normalized frequency-bin magnitude vector
- SpectrogramMetadata: axis/configuration metadata for a spectrogram
- SpectrogramSnapshot: immutable time x frequency view of the history
- EngineStats: summary statistics of an engine instance

Invariants
----------
- Column and matrix values are finite and lie in [0, 1]
- Every row of a snapshot matrix has exactly meta.n_bins entries
- Snapshot rows are ordered oldest (row 0) to newest (last row)
- Frequency axis runs from DC (bin 0) to Nyquist (bin n_bins - 1)
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, Any, Optional

import numpy as np

from contracts.validation import (
    ValidationError,
    validate_finite_scalar,
    validate_int_at_least,
    validate_ndim,
    validate_unit_interval,
)


def _make_immutable_copy(array: np.ndarray, dtype: type = np.float64) -> np.ndarray:
    """Create an immutable copy of an array."""
    copy = np.array(array, dtype=dtype, copy=True)
    copy.flags.writeable = False
    return copy


@dataclass(frozen=True)
class SpectralColumn:
    """
    One time slice of the spectrogram.

    Parameters
    ----------
    values : np.ndarray
        Normalized bin magnitudes in [0, 1], DC first. Length is
        ``window_size // 2 + 1``.
    timestamp : float
        Timestamp of the frame that completed the window, in seconds.
    sequence : int
        Zero-based production index of this column within its engine.
    peak_magnitude : float
        Largest un-normalized bin magnitude before normalization.
    """

    values: np.ndarray = field(repr=False)
    timestamp: float = 0.0
    sequence: int = 0
    peak_magnitude: float = 0.0

    def __post_init__(self) -> None:
        """Validate and freeze values after initialization."""
        validate_ndim(self.values, 1, "values")
        validate_unit_interval(self.values, "values")
        object.__setattr__(self, "values", _make_immutable_copy(self.values))

        validate_finite_scalar(self.timestamp, "timestamp")
        validate_int_at_least(self.sequence, 0, "sequence")
        validate_finite_scalar(self.peak_magnitude, "peak_magnitude")
        if self.peak_magnitude < 0:
            raise ValidationError(
                f"peak_magnitude must be non-negative, got {self.peak_magnitude}"
            )

    @property
    def n_bins(self) -> int:
        """Number of frequency bins."""
        return len(self.values)

    @property
    def dominant_bin(self) -> int:
        """Index of the strongest bin (lowest index on ties)."""
        return int(np.argmax(self.values))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SpectralColumn):
            return NotImplemented
        return (
            self.sequence == other.sequence
            and self.timestamp == other.timestamp
            and np.array_equal(self.values, other.values)
        )

    def __hash__(self) -> int:
        return hash((self.sequence, self.timestamp, self.values.tobytes()))


@dataclass(frozen=True)
class SpectrogramMetadata:
    """
    Metadata a sink needs to label spectrogram axes.

    Parameters
    ----------
    window_size : int
        Sliding window length in samples.
    history : int
        Maximum number of retained columns.
    sample_rate_hz : float, optional
        Frame arrival rate, if known. Enables a Hz frequency axis.
    normalization : str
        Name of the normalization policy applied to every column.
    reference_magnitude : float
        Denominator used by the fixed-reference policy.
    remove_dc : bool
        Whether the window mean was subtracted before the transform.
    generation : int
        Number of columns the engine had produced when the snapshot was taken.
    """

    window_size: int
    history: int
    sample_rate_hz: Optional[float] = None
    normalization: str = "per_column"
    reference_magnitude: float = 1.0
    remove_dc: bool = False
    generation: int = 0

    def __post_init__(self) -> None:
        validate_int_at_least(self.window_size, 2, "window_size")
        validate_int_at_least(self.history, 1, "history")
        validate_int_at_least(self.generation, 0, "generation")
        if self.sample_rate_hz is not None:
            validate_finite_scalar(self.sample_rate_hz, "sample_rate_hz")

    @property
    def n_bins(self) -> int:
        """Number of non-redundant bins of a real transform: DC..Nyquist."""
        return self.window_size // 2 + 1

    def frequency_axis(self) -> np.ndarray:
        """
        Bin centre frequencies.

        Returns
        -------
        np.ndarray
            Hz values from ``numpy.fft.rfftfreq`` when the sample rate is
            known, otherwise the bin indices as floats.
        """
        if self.sample_rate_hz is None:
            return np.arange(self.n_bins, dtype=np.float64)
        return np.fft.rfftfreq(self.window_size, d=1.0 / self.sample_rate_hz)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["n_bins"] = self.n_bins
        return data


@dataclass(frozen=True)
class SpectrogramSnapshot:
    """
    Immutable, consistent copy of the spectrogram history.

    Parameters
    ----------
    matrix : np.ndarray
        Shape (n_columns, n_bins). Row 0 is the oldest retained column.
    timestamps : np.ndarray
        Per-row column timestamps. Shape (n_columns,).
    sequences : np.ndarray
        Per-row column sequence numbers. Shape (n_columns,).
    meta : SpectrogramMetadata
        Axis and configuration metadata.
    """

    matrix: np.ndarray = field(repr=False)
    timestamps: np.ndarray = field(repr=False)
    sequences: np.ndarray = field(repr=False)
    meta: SpectrogramMetadata

    def __post_init__(self) -> None:
        if not isinstance(self.meta, SpectrogramMetadata):
            raise TypeError(
                f"meta must be SpectrogramMetadata, got {type(self.meta).__name__}"
            )
        validate_ndim(self.matrix, 2, "matrix")
        if self.matrix.shape[1] != self.meta.n_bins:
            raise ValidationError(
                f"matrix must have {self.meta.n_bins} bins per row, "
                f"got shape {self.matrix.shape}"
            )
        if self.matrix.shape[0] > self.meta.history:
            raise ValidationError(
                f"matrix holds {self.matrix.shape[0]} columns, "
                f"more than history={self.meta.history}"
            )
        validate_ndim(self.timestamps, 1, "timestamps")
        validate_ndim(self.sequences, 1, "sequences")
        if not (len(self.timestamps) == len(self.sequences) == self.matrix.shape[0]):
            raise ValidationError(
                "timestamps and sequences must have one entry per matrix row"
            )

        object.__setattr__(self, "matrix", _make_immutable_copy(self.matrix))
        object.__setattr__(self, "timestamps", _make_immutable_copy(self.timestamps))
        object.__setattr__(
            self, "sequences", _make_immutable_copy(self.sequences, dtype=np.int64)
        )

    @classmethod
    def empty(cls, meta: SpectrogramMetadata) -> "SpectrogramSnapshot":
        """Snapshot with no columns, shape (0, n_bins)."""
        return cls(
            matrix=np.zeros((0, meta.n_bins)),
            timestamps=np.zeros(0),
            sequences=np.zeros(0, dtype=np.int64),
            meta=meta,
        )

    @property
    def n_columns(self) -> int:
        """Number of retained time columns."""
        return self.matrix.shape[0]

    @property
    def n_bins(self) -> int:
        """Number of frequency bins per column."""
        return self.matrix.shape[1]

    @property
    def shape(self):
        """Matrix shape (n_columns, n_bins)."""
        return self.matrix.shape

    @property
    def is_empty(self) -> bool:
        return self.n_columns == 0

    def frequency_axis(self) -> np.ndarray:
        """Bin frequencies (Hz if the sample rate is known, else bin indices)."""
        return self.meta.frequency_axis()

    def latest_column(self) -> Optional[np.ndarray]:
        """Newest column values, or None when empty."""
        if self.is_empty:
            return None
        return self.matrix[-1]


@dataclass(frozen=True)
class EngineStats:
    """
    Summary statistics of a Doppler engine, computed on demand.

    Attributes
    ----------
    frames_received : int
        Frames offered to the engine, accepted or not.
    frames_rejected : int
        Frames rejected as InvalidFrame.
    columns_produced : int
        Spectral columns produced since construction or reset.
    columns_evicted : int
        Columns dropped from the history by FIFO eviction.
    window_fill : int
        Current number of samples in the sliding window.
    history_fill : int
        Current number of columns in the history.
    last_amplitude : float, optional
        Most recent accepted amplitude sample.
    dominant_bin : int, optional
        Strongest bin of the newest column.
    dominant_frequency_hz : float, optional
        Frequency of dominant_bin, when the sample rate is known.
    mean_intensity : float, optional
        Mean normalized value of the newest column.
    last_transform_duration_s : float
        Wall time of the most recent transform.
    """

    frames_received: int = 0
    frames_rejected: int = 0
    columns_produced: int = 0
    columns_evicted: int = 0
    window_fill: int = 0
    history_fill: int = 0
    last_amplitude: Optional[float] = None
    dominant_bin: Optional[int] = None
    dominant_frequency_hz: Optional[float] = None
    mean_intensity: Optional[float] = None
    last_transform_duration_s: float = 0.0

    @property
    def frames_accepted(self) -> int:
        return self.frames_received - self.frames_rejected

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["frames_accepted"] = self.frames_accepted
        return data
