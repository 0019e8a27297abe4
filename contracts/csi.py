"""
contracts/csi.py

CSI frame data contract.

Defines the container handed to the Doppler engine by an upstream decoder:
- CSIFrame: one snapshot of per-subcarrier complex channel response

The frame is immutable (frozen dataclass) with runtime validation.

Invariants
----------
- timestamp must be finite (no inf, no nan)
- real and imag must be 1D arrays of the same length
- arrays are stored as read-only float64 copies

Finiteness of the samples and a non-zero subcarrier count are NOT enforced
here. They are checked where the frame is consumed (doppler.reducer), so a
degenerate frame is rejected as InvalidFrame at the engine boundary.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional, Sequence, Tuple

import numpy as np

from contracts.validation import (
    ValidationError,
    validate_finite_scalar,
    validate_ndim,
)


def _make_immutable_copy(array: np.ndarray) -> np.ndarray:
    """Create an immutable float64 copy of an array."""
    copy = np.array(array, dtype=np.float64, copy=True)
    copy.flags.writeable = False
    return copy


@dataclass(frozen=True)
class CSIFrame:
    """
    Immutable container for a single CSI measurement.

    Parameters
    ----------
    real : np.ndarray
        Per-subcarrier real (in-phase) parts. 1D array.
    imag : np.ndarray
        Per-subcarrier imaginary (quadrature) parts. 1D array, same length
        as real.
    timestamp : float
        Measurement time in seconds. Must be finite. Defaults to 0.0.
    meta : dict
        Optional metadata (e.g., RSSI, MAC address, channel).

    Raises
    ------
    TypeError
        If types are incorrect.
    ValidationError
        If arrays are not 1D, have mismatched shapes, or the timestamp
        is not finite.

    Examples
    --------
    >>> frame = CSIFrame(real=np.array([3.0, 0.0]), imag=np.array([4.0, 1.0]))
    >>> frame.num_subcarriers
    2
    >>> frame.amplitude
    array([5., 1.])
    """

    real: np.ndarray = field(repr=False)
    imag: np.ndarray = field(repr=False)
    timestamp: float = 0.0
    meta: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate and freeze arrays after initialization."""
        validate_finite_scalar(self.timestamp, "timestamp")
        object.__setattr__(self, "timestamp", float(self.timestamp))

        validate_ndim(self.real, 1, "real")
        validate_ndim(self.imag, 1, "imag")
        if self.real.shape != self.imag.shape:
            raise ValidationError(
                f"real shape {self.real.shape} must match imag shape {self.imag.shape}"
            )

        object.__setattr__(self, "real", _make_immutable_copy(self.real))
        object.__setattr__(self, "imag", _make_immutable_copy(self.imag))

        if not isinstance(self.meta, dict):
            raise TypeError(f"meta must be dict, got {type(self.meta).__name__}")
        object.__setattr__(self, "meta", dict(self.meta))

    @classmethod
    def from_complex(
        cls,
        values: np.ndarray,
        timestamp: float = 0.0,
        meta: Optional[Dict[str, Any]] = None,
    ) -> "CSIFrame":
        """
        Build a frame from a 1D array of complex subcarrier values.

        Parameters
        ----------
        values : np.ndarray
            Complex CSI, one value per subcarrier.
        timestamp : float
            Measurement time in seconds.
        meta : dict, optional
            Frame metadata.
        """
        values = np.asarray(values)
        return cls(
            real=np.real(values),
            imag=np.imag(values),
            timestamp=timestamp,
            meta=meta or {},
        )

    @classmethod
    def from_interleaved(
        cls,
        iq: Sequence[float],
        timestamp: float = 0.0,
        meta: Optional[Dict[str, Any]] = None,
        imag_first: bool = False,
    ) -> "CSIFrame":
        """
        Build a frame from a flat interleaved I/Q sequence.

        The ESP32 CSI dump emits ``[v0, v1, v2, v3, ...]`` where each pair
        ``(v[2i], v[2i+1])`` describes subcarrier ``i``. An odd trailing value
        cannot form a pair and is dropped.

        Parameters
        ----------
        iq : sequence of numbers
            Interleaved values.
        timestamp : float
            Measurement time in seconds.
        meta : dict, optional
            Frame metadata.
        imag_first : bool
            If True, pairs are (imag, real) instead of (real, imag).
        """
        flat = np.asarray(iq, dtype=np.float64).ravel()
        n_pairs = flat.size // 2
        pairs = flat[: 2 * n_pairs].reshape(n_pairs, 2)
        re_col, im_col = (1, 0) if imag_first else (0, 1)
        return cls(
            real=pairs[:, re_col],
            imag=pairs[:, im_col],
            timestamp=timestamp,
            meta=meta or {},
        )

    @classmethod
    def from_amplitude_phase(
        cls,
        amplitude: np.ndarray,
        phase: np.ndarray,
        timestamp: float = 0.0,
        meta: Optional[Dict[str, Any]] = None,
    ) -> "CSIFrame":
        """Build a frame from polar per-subcarrier amplitude and phase (radians)."""
        amplitude = np.asarray(amplitude, dtype=np.float64)
        phase = np.asarray(phase, dtype=np.float64)
        if amplitude.shape != phase.shape:
            raise ValidationError(
                f"amplitude shape {amplitude.shape} must match phase shape {phase.shape}"
            )
        return cls.from_complex(
            amplitude * np.exp(1j * phase), timestamp=timestamp, meta=meta
        )

    @property
    def num_subcarriers(self) -> int:
        """Number of subcarriers in this frame."""
        return len(self.real)

    @property
    def shape(self) -> Tuple[int]:
        """Shape of the real and imaginary arrays."""
        return self.real.shape

    @property
    def amplitude(self) -> np.ndarray:
        """Per-subcarrier magnitude sqrt(re^2 + im^2)."""
        return np.hypot(self.real, self.imag)

    @property
    def phase(self) -> np.ndarray:
        """Per-subcarrier phase in radians, wrapped to [-pi, pi]."""
        return np.arctan2(self.imag, self.real)

    def get_complex(self) -> np.ndarray:
        """Complex-valued CSI representation: real + 1j * imag."""
        return self.real + 1j * self.imag

    def __repr__(self) -> str:
        """Concise string representation."""
        return (
            f"CSIFrame(timestamp={self.timestamp}, "
            f"num_subcarriers={self.num_subcarriers})"
        )

    def __eq__(self, other: object) -> bool:
        """Check equality with another CSIFrame."""
        if not isinstance(other, CSIFrame):
            return NotImplemented

        return (
            self.timestamp == other.timestamp
            and np.array_equal(self.real, other.real)
            and np.array_equal(self.imag, other.imag)
        )

    def __hash__(self) -> int:
        """Compute hash for the frame."""
        return hash((
            self.timestamp,
            self.real.tobytes(),
            self.imag.tobytes(),
        ))
