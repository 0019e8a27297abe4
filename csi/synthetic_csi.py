"""
synthetic_csi.py

Simulates Wi-Fi-like channel state information (CSI) frames carrying a
Doppler-style amplitude modulation.

A moving reflector makes the received amplitude fluctuate at a rate set by
its radial velocity. This generator reproduces that signature without a
device: every subcarrier carries a static path gain and phase, a shared
sinusoidal modulation at ``doppler_hz`` and independent measurement noise.
The frames are handed to the Doppler engine exactly like decoded device
frames.

All time units are seconds.
"""

import math
from typing import List, Optional

import numpy as np

from contracts.csi import CSIFrame
from contracts.validation import (
    ConfigurationError,
    validate_finite_scalar,
    validate_int_at_least,
    validate_positive,
    validate_range,
)


class SyntheticCSIGenerator:
    """
    Generates synthetic CSI frames with a configurable Doppler tone.

    Per-subcarrier amplitude at time t:

        A_i(t) = gain_i * base_amplitude * (1 + depth * sin(2 pi f t)) + noise

    Per-subcarrier phase is a static, frequency-dependent path phase plus
    Gaussian phase noise. The phase term does not affect the magnitude
    reducer; it is present so frames look like real complex CSI.

    Parameters
    ----------
    num_subcarriers : int
        Number of subcarriers per frame. Defaults to 64 (ESP32 HT20).
    sample_rate_hz : float
        Frame rate. Consecutive frames are 1 / sample_rate_hz apart.
    doppler_hz : float
        Modulation frequency. Values above the Nyquist rate alias.
    modulation_depth : float
        Relative depth of the modulation, in [0, 1].
    base_amplitude : float
        Mean amplitude before modulation.
    amplitude_noise_std : float, optional
        Standard deviation of additive amplitude noise. Defaults to 0.0.
    phase_noise_std : float, optional
        Standard deviation of phase noise in radians. Defaults to 0.05.
    random_seed : Optional[int], optional
        Seed for reproducible noise generation. If None, uses system entropy.

    Attributes
    ----------
    time : float
        Timestamp the next call to generate() will use.
    """

    def __init__(
        self,
        num_subcarriers: int = 64,
        sample_rate_hz: float = 100.0,
        doppler_hz: float = 5.0,
        modulation_depth: float = 0.5,
        base_amplitude: float = 10.0,
        amplitude_noise_std: float = 0.0,
        phase_noise_std: float = 0.05,
        random_seed: Optional[int] = None,
    ) -> None:
        """Initialize the synthetic CSI generator."""
        validate_int_at_least(num_subcarriers, 1, "num_subcarriers", error=ConfigurationError)
        validate_positive(sample_rate_hz, "sample_rate_hz", error=ConfigurationError)
        validate_positive(doppler_hz, "doppler_hz", allow_zero=True, error=ConfigurationError)
        validate_range(modulation_depth, 0.0, 1.0, "modulation_depth")
        validate_positive(base_amplitude, "base_amplitude", allow_zero=True, error=ConfigurationError)
        validate_positive(amplitude_noise_std, "amplitude_noise_std", allow_zero=True, error=ConfigurationError)
        validate_positive(phase_noise_std, "phase_noise_std", allow_zero=True, error=ConfigurationError)

        self._num_subcarriers = int(num_subcarriers)
        self._sample_rate_hz = float(sample_rate_hz)
        self._doppler_hz = float(doppler_hz)
        self._modulation_depth = float(modulation_depth)
        self._base_amplitude = float(base_amplitude)
        self._amplitude_noise_std = float(amplitude_noise_std)
        self._phase_noise_std = float(phase_noise_std)

        # Initialize random number generator for reproducibility
        self._rng = np.random.default_rng(random_seed)

        # Static multipath: per-subcarrier gain around 1 and a linear path phase
        self._path_gains = 1.0 + 0.1 * np.cos(
            np.linspace(0.0, 2.0 * math.pi, self._num_subcarriers)
        )
        self._path_phases = np.linspace(0.0, 4.0 * math.pi, self._num_subcarriers)

        self._time = 0.0

    @property
    def num_subcarriers(self) -> int:
        return self._num_subcarriers

    @property
    def sample_rate_hz(self) -> float:
        return self._sample_rate_hz

    @property
    def doppler_hz(self) -> float:
        return self._doppler_hz

    @property
    def time(self) -> float:
        """Timestamp the next frame will carry."""
        return self._time

    def doppler_bin(self, window_size: int) -> int:
        """
        Frequency bin of a real transform nearest to the modulation.

        Parameters
        ----------
        window_size : int
            Transform length.

        Returns
        -------
        int
            round(doppler_hz * window_size / sample_rate_hz).
        """
        return int(round(self._doppler_hz * window_size / self._sample_rate_hz))

    def amplitude_at(self, timestamp: float) -> float:
        """Noise-free mean amplitude at a timestamp."""
        modulation = 1.0 + self._modulation_depth * math.sin(
            2.0 * math.pi * self._doppler_hz * timestamp
        )
        return self._base_amplitude * modulation

    def generate(self, timestamp: Optional[float] = None) -> CSIFrame:
        """
        Generate one CSI frame and advance the internal clock.

        Parameters
        ----------
        timestamp : Optional[float], optional
            Timestamp for the frame. If None, uses the internal clock.

        Returns
        -------
        CSIFrame
            The generated frame.
        """
        if timestamp is None:
            timestamp = self._time

        amplitudes = self._path_gains * self.amplitude_at(timestamp)

        amplitude_noise = self._rng.normal(
            loc=0.0,
            scale=self._amplitude_noise_std,
            size=self._num_subcarriers,
        )
        phase_noise = self._rng.normal(
            loc=0.0,
            scale=self._phase_noise_std,
            size=self._num_subcarriers,
        )

        # Apply noise (ensure amplitudes stay non-negative)
        amplitudes = np.maximum(amplitudes + amplitude_noise, 0.0)
        phases = self._path_phases + phase_noise

        self._time = timestamp + 1.0 / self._sample_rate_hz

        return CSIFrame.from_amplitude_phase(
            amplitudes,
            phases,
            timestamp=timestamp,
            meta={"source": "synthetic", "doppler_hz": self._doppler_hz},
        )

    def generate_sequence(
        self,
        num_frames: int,
        start_timestamp: Optional[float] = None,
    ) -> List[CSIFrame]:
        """
        Generate consecutive frames spaced by 1 / sample_rate_hz.

        Parameters
        ----------
        num_frames : int
            Number of frames to generate.
        start_timestamp : Optional[float], optional
            Timestamp for the first frame. If None, continues the internal clock.

        Returns
        -------
        List[CSIFrame]
            Generated frames in time order.
        """
        if start_timestamp is not None:
            self._time = float(start_timestamp)

        return [self.generate() for _ in range(num_frames)]

    def set_noise(
        self,
        amplitude_noise_std: Optional[float] = None,
        phase_noise_std: Optional[float] = None,
    ) -> None:
        """
        Change the measurement noise levels; None keeps the current value.

        Raises
        ------
        ConfigurationError
            If a standard deviation is negative or not finite.
        """
        if amplitude_noise_std is not None:
            validate_positive(
                amplitude_noise_std, "amplitude_noise_std", allow_zero=True, error=ConfigurationError
            )
            self._amplitude_noise_std = float(amplitude_noise_std)
        if phase_noise_std is not None:
            validate_positive(
                phase_noise_std, "phase_noise_std", allow_zero=True, error=ConfigurationError
            )
            self._phase_noise_std = float(phase_noise_std)

    def set_doppler(self, doppler_hz: float, modulation_depth: Optional[float] = None) -> None:
        """Change the modulation frequency (and optionally its depth)."""
        validate_positive(doppler_hz, "doppler_hz", allow_zero=True, error=ConfigurationError)
        self._doppler_hz = float(doppler_hz)
        if modulation_depth is not None:
            validate_range(modulation_depth, 0.0, 1.0, "modulation_depth")
            self._modulation_depth = float(modulation_depth)

    def restart(self, seed: Optional[int] = None, start_timestamp: float = 0.0) -> None:
        """
        Rewind the clock and reseed the noise source.

        With the construction seed this replays the exact same frame stream,
        which lets a replay be compared against an earlier engine run.

        Parameters
        ----------
        seed : Optional[int], optional
            Noise seed. If None, uses system entropy.
        start_timestamp : float, optional
            Timestamp of the next frame. Defaults to 0.0.
        """
        validate_finite_scalar(start_timestamp, "start_timestamp", error=ConfigurationError)
        self._rng = np.random.default_rng(seed)
        self._time = float(start_timestamp)
