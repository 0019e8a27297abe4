"""
transform.py

Spectral transform stage: Hann taper, real FFT, magnitude and normalization.

Turns one full window of amplitude samples into one normalized spectral
column of ``window_size // 2 + 1`` bins (DC..Nyquist). All functions are
deterministic: the same window always yields the same column.
"""

from typing import Optional, Tuple, Union

import numpy as np

from contracts.validation import (
    ConfigurationError,
    ValidationError,
    validate_int_at_least,
    validate_ndim,
    validate_positive,
)
from doppler.config import NormalizationPolicy

DEFAULT_EPSILON = 1e-12


def hann_window(n: int) -> np.ndarray:
    """
    Symmetric Hann taper.

    w[k] = 0.5 - 0.5 * cos(2 * pi * k / (n - 1)) for k in [0, n).

    Parameters
    ----------
    n : int
        Taper length. Must be >= 2.

    Returns
    -------
    np.ndarray
        Taper of shape (n,); zero at both ends.
    """
    validate_int_at_least(n, 2, "n", error=ConfigurationError)
    return np.hanning(n)


def magnitude_spectrum(
    samples: np.ndarray,
    taper: Optional[np.ndarray] = None,
    remove_dc: bool = False,
) -> np.ndarray:
    """
    Magnitude of the real FFT of a (tapered) sample block.

    Parameters
    ----------
    samples : np.ndarray
        1D real-valued samples, oldest first.
    taper : np.ndarray, optional
        Multiplicative taper of the same length. If None, no taper is applied
        (rectangular window).
    remove_dc : bool, optional
        Subtract the block mean before tapering. Defaults to False.

    Returns
    -------
    np.ndarray
        Bin magnitudes, shape (len(samples) // 2 + 1,).
    """
    work = np.array(samples, dtype=np.float64, copy=True)
    validate_ndim(work, 1, "samples")

    if remove_dc and work.size:
        work -= np.mean(work)

    if taper is not None:
        if taper.shape != work.shape:
            raise ValidationError(
                f"taper shape {taper.shape} does not match samples shape {work.shape}"
            )
        work *= taper

    return np.abs(np.fft.rfft(work))


def normalize_column(
    magnitudes: np.ndarray,
    policy: Union[NormalizationPolicy, str] = NormalizationPolicy.PER_COLUMN,
    reference_magnitude: float = 1.0,
    epsilon: float = DEFAULT_EPSILON,
) -> np.ndarray:
    """
    Scale bin magnitudes into [0, 1].

    The denominator is never below ``epsilon``, so an all-zero spectrum maps
    to all zeros instead of NaN.

    Parameters
    ----------
    magnitudes : np.ndarray
        Non-negative bin magnitudes.
    policy : NormalizationPolicy or str
        PER_COLUMN divides by max(epsilon, max(magnitudes)).
        FIXED_REFERENCE divides by max(epsilon, reference_magnitude).
    reference_magnitude : float
        Denominator for FIXED_REFERENCE.
    epsilon : float
        Lower bound of the denominator.

    Returns
    -------
    np.ndarray
        Normalized values clipped to [0, 1].
    """
    policy = NormalizationPolicy(policy)
    magnitudes = np.asarray(magnitudes, dtype=np.float64)

    if policy is NormalizationPolicy.PER_COLUMN:
        peak = float(np.max(magnitudes)) if magnitudes.size else 0.0
        denominator = max(epsilon, peak)
    else:
        denominator = max(epsilon, float(reference_magnitude))

    return np.clip(magnitudes / denominator, 0.0, 1.0)


class SpectralTransform:
    """
    Window -> normalized spectral column, with a precomputed taper.

    Parameters
    ----------
    window_size : int
        Number of samples per transform. Must be >= 2.
    policy : NormalizationPolicy or str, optional
        Normalization policy. Defaults to PER_COLUMN.
    reference_magnitude : float, optional
        Denominator for FIXED_REFERENCE. Defaults to 1.0.
    epsilon : float, optional
        Lower bound of the normalization denominator.
    remove_dc : bool, optional
        Subtract the window mean before tapering. Defaults to False.

    Attributes
    ----------
    n_bins : int
        Output column length, window_size // 2 + 1.
    """

    def __init__(
        self,
        window_size: int,
        policy: Union[NormalizationPolicy, str] = NormalizationPolicy.PER_COLUMN,
        reference_magnitude: float = 1.0,
        epsilon: float = DEFAULT_EPSILON,
        remove_dc: bool = False,
    ) -> None:
        validate_positive(reference_magnitude, "reference_magnitude", error=ConfigurationError)
        validate_positive(epsilon, "epsilon", error=ConfigurationError)

        self._window_size = int(window_size)
        self._taper = hann_window(self._window_size)
        self._taper.flags.writeable = False
        self._policy = NormalizationPolicy(policy)
        self._reference_magnitude = float(reference_magnitude)
        self._epsilon = float(epsilon)
        self._remove_dc = bool(remove_dc)

    @property
    def window_size(self) -> int:
        return self._window_size

    @property
    def n_bins(self) -> int:
        return self._window_size // 2 + 1

    @property
    def taper(self) -> np.ndarray:
        """The precomputed Hann taper (read-only)."""
        return self._taper

    @property
    def policy(self) -> NormalizationPolicy:
        return self._policy

    def compute(self, samples: np.ndarray) -> Tuple[np.ndarray, float]:
        """
        Transform one full window.

        Parameters
        ----------
        samples : np.ndarray
            Exactly ``window_size`` samples, oldest first.

        Returns
        -------
        Tuple[np.ndarray, float]
            normalized : bin values in [0, 1], shape (n_bins,)
            peak_magnitude : largest un-normalized bin magnitude
        """
        samples = np.asarray(samples, dtype=np.float64)
        if samples.shape != (self._window_size,):
            raise ValidationError(
                f"samples must have shape ({self._window_size},), got {samples.shape}"
            )

        magnitudes = magnitude_spectrum(samples, self._taper, remove_dc=self._remove_dc)
        normalized = normalize_column(
            magnitudes,
            policy=self._policy,
            reference_magnitude=self._reference_magnitude,
            epsilon=self._epsilon,
        )
        return normalized, float(np.max(magnitudes))
