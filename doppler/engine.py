"""
engine.py

Streaming Doppler spectrogram engine.

``DopplerSpectrogram`` owns the sliding amplitude window and the spectrogram
history and exposes two surfaces:

- write path: ``push_frame`` reduces a CSI frame to one amplitude sample,
  pushes it into the window and, once the window is full, appends one spectral
  column to the history;
- read path: ``snapshot`` / ``stats`` return consistent immutable copies for a
  lower-rate consumer such as a rendering loop.

Thread-safety is maintained through an internal :class:`threading.RLock`
held only for a push (bounded by the window size) or a snapshot copy
(bounded by history x bins). No I/O or logging happens under the lock.
Every push is atomic: a rejected frame leaves window and history unchanged.
"""

import logging
import time
from threading import RLock
from typing import Optional, Tuple, Union

import numpy as np

from contracts.csi import CSIFrame
from contracts.spectral import (
    EngineStats,
    SpectralColumn,
    SpectrogramMetadata,
    SpectrogramSnapshot,
)
from contracts.validation import InvalidFrame, validate_finite_scalar
from doppler.config import EngineConfig, NormalizationPolicy
from doppler.reducer import reduce_frame
from doppler.ring_buffer import SlidingWindow, SpectrogramHistory
from doppler.transform import DEFAULT_EPSILON, SpectralTransform

LOGGER = logging.getLogger(__name__)


class DopplerSpectrogram:
    """
    Sliding-window magnitude Doppler spectrogram.

    Parameters
    ----------
    window_size : int, optional
        Sliding window length in samples (>= 2). Larger windows give finer
        frequency bins but respond more slowly to motion. Defaults to 128.
    history : int, optional
        Number of retained columns (>= 1); the visible time span.
        Defaults to 200.
    sample_rate_hz : float, optional
        Frame arrival rate, used only to label the frequency axis.
    normalization : NormalizationPolicy or str, optional
        Column scaling policy. Defaults to PER_COLUMN.
    reference_magnitude : float, optional
        Denominator for FIXED_REFERENCE normalization. Defaults to 1.0.
    epsilon : float, optional
        Lower bound of the normalization denominator.
    remove_dc : bool, optional
        Subtract the window mean before the transform. Defaults to False.

    Raises
    ------
    ConfigurationError
        If any construction parameter is invalid.

    Examples
    --------
    >>> engine = DopplerSpectrogram(window_size=4, history=10)
    >>> for _ in range(4):
    ...     _ = engine.push_sample(0.0)
    >>> engine.snapshot().shape
    (1, 3)
    """

    def __init__(
        self,
        window_size: int = 128,
        history: int = 200,
        *,
        sample_rate_hz: Optional[float] = None,
        normalization: Union[NormalizationPolicy, str] = NormalizationPolicy.PER_COLUMN,
        reference_magnitude: float = 1.0,
        epsilon: float = DEFAULT_EPSILON,
        remove_dc: bool = False,
    ) -> None:
        self._config = EngineConfig(
            window_size=window_size,
            history=history,
            sample_rate_hz=sample_rate_hz,
            normalization=normalization,
            reference_magnitude=reference_magnitude,
            epsilon=epsilon,
            remove_dc=remove_dc,
        )

        self._window = SlidingWindow(self._config.window_size)
        self._history = SpectrogramHistory(self._config.history, self._config.n_bins)
        self._transform = SpectralTransform(
            self._config.window_size,
            policy=self._config.normalization,
            reference_magnitude=self._config.reference_magnitude,
            epsilon=self._config.epsilon,
            remove_dc=self._config.remove_dc,
        )
        self._frequency_axis = self._metadata(0).frequency_axis()

        self._lock = RLock()
        # Bumped on every committed column and every reset; never zeroed
        self._epoch = 0
        self._reset_counters()

        LOGGER.debug(
            "Doppler engine ready: window=%d history=%d bins=%d policy=%s",
            self._config.window_size,
            self._config.history,
            self._config.n_bins,
            self._config.normalization.value,
        )

    @classmethod
    def from_config(cls, config: EngineConfig) -> "DopplerSpectrogram":
        """Build an engine from an EngineConfig."""
        if not isinstance(config, EngineConfig):
            raise TypeError(f"config must be EngineConfig, got {type(config).__name__}")
        return cls(**config.to_dict())

    def _reset_counters(self) -> None:
        self._frames_received = 0
        self._frames_rejected = 0
        self._columns_produced = 0
        self._columns_evicted = 0
        self._last_amplitude: Optional[float] = None
        self._last_transform_duration_s = 0.0
        self._cached_snapshot: Optional[SpectrogramSnapshot] = None

    # -- properties ------------------------------------------------------------

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def window_size(self) -> int:
        return self._config.window_size

    @property
    def history(self) -> int:
        return self._config.history

    @property
    def n_bins(self) -> int:
        """Column length: window_size // 2 + 1."""
        return self._config.n_bins

    @property
    def generation(self) -> int:
        """Number of columns produced since construction or reset."""
        with self._lock:
            return self._columns_produced

    def window_len(self) -> int:
        with self._lock:
            return len(self._window)

    def is_window_full(self) -> bool:
        with self._lock:
            return self._window.is_full()

    def history_len(self) -> int:
        with self._lock:
            return len(self._history)

    def window_snapshot(self) -> np.ndarray:
        """Read-only copy of the window contents, oldest first."""
        with self._lock:
            return self._window.snapshot()

    # -- write path ------------------------------------------------------------

    def push_frame(self, frame: CSIFrame) -> Optional[SpectralColumn]:
        """
        Ingest one CSI frame.

        Parameters
        ----------
        frame : CSIFrame
            Frame with at least one subcarrier and finite values.

        Returns
        -------
        Optional[SpectralColumn]
            The column produced by this push, or None while the window is
            still filling.

        Raises
        ------
        InvalidFrame
            If the frame cannot be reduced. Window and history are unchanged.
        """
        try:
            sample = reduce_frame(frame)
        except InvalidFrame:
            with self._lock:
                self._frames_received += 1
                self._frames_rejected += 1
            raise

        return self._ingest(sample, frame.timestamp)

    def try_push_frame(self, frame: CSIFrame) -> Optional[SpectralColumn]:
        """
        Ingest one CSI frame, skipping it if malformed.

        Same as :meth:`push_frame` but an InvalidFrame is logged and counted
        instead of raised.
        """
        try:
            return self.push_frame(frame)
        except InvalidFrame as e:
            LOGGER.warning("Dropping malformed CSI frame at t=%s: %s", frame.timestamp, e)
            return None

    def push_sample(self, sample: float, timestamp: float = 0.0) -> Optional[SpectralColumn]:
        """
        Ingest an already reduced amplitude sample.

        Parameters
        ----------
        sample : float
            Finite, non-negative amplitude.
        timestamp : float, optional
            Sample time in seconds.

        Raises
        ------
        InvalidFrame
            If the sample is negative or not finite.
        """
        validate_finite_scalar(sample, "sample", error=InvalidFrame)
        validate_finite_scalar(timestamp, "timestamp", error=InvalidFrame)
        if sample < 0:
            raise InvalidFrame(f"sample must be non-negative, got {sample}")
        return self._ingest(float(sample), float(timestamp))

    def _ingest(self, sample: float, timestamp: float) -> Optional[SpectralColumn]:
        with self._lock:
            self._frames_received += 1

            # Transform the prospective window first so a failure cannot leave
            # the window updated without its column.
            column = None
            if len(self._window) + 1 >= self._window.window_size:
                column, duration = self._prospective_column(sample, timestamp)
                if column is None:
                    self._frames_rejected += 1
                    raise InvalidFrame(
                        f"sample {sample} drives the spectrum out of finite range"
                    )
                self._last_transform_duration_s = duration

            self._window.push(sample)
            self._last_amplitude = sample

            if column is not None:
                if self._history.push(column):
                    self._columns_evicted += 1
                self._columns_produced += 1
                self._epoch += 1
                self._cached_snapshot = None

            return column

    def _prospective_column(
        self,
        sample: float,
        timestamp: float,
    ) -> Tuple[Optional[SpectralColumn], float]:
        t_start = time.perf_counter()
        current = self._window.snapshot()
        if self._window.is_full():
            current = current[1:]
        samples = np.append(current, sample)

        with np.errstate(over="ignore", invalid="ignore"):
            normalized, peak = self._transform.compute(samples)

        duration = time.perf_counter() - t_start
        if not (np.all(np.isfinite(normalized)) and np.isfinite(peak)):
            return None, duration

        column = SpectralColumn(
            values=normalized,
            timestamp=timestamp,
            sequence=self._columns_produced,
            peak_magnitude=peak,
        )
        return column, duration

    def reset(self) -> None:
        """Clear window, history and counters; configuration is kept."""
        with self._lock:
            self._window.clear()
            self._history.clear()
            self._reset_counters()
            self._epoch += 1
        LOGGER.debug("Doppler engine reset")

    # -- read path -------------------------------------------------------------

    def _metadata(self, generation: int) -> SpectrogramMetadata:
        return SpectrogramMetadata(
            window_size=self._config.window_size,
            history=self._config.history,
            sample_rate_hz=self._config.sample_rate_hz,
            normalization=self._config.normalization.value,
            reference_magnitude=self._config.reference_magnitude,
            remove_dc=self._config.remove_dc,
            generation=generation,
        )

    def snapshot(self) -> SpectrogramSnapshot:
        """
        Consistent immutable copy of the spectrogram.

        Repeated calls without new columns return the same object.

        Returns
        -------
        SpectrogramSnapshot
            Matrix shaped (n_columns, n_bins), oldest row first. Empty
            (0, n_bins) before the first column.
        """
        with self._lock:
            if self._cached_snapshot is not None:
                return self._cached_snapshot
            epoch = self._epoch
            generation = self._columns_produced
            matrix = self._history.matrix()
            timestamps = self._history.timestamps()
            sequences = self._history.sequences()

        snapshot = SpectrogramSnapshot(
            matrix=matrix,
            timestamps=timestamps,
            sequences=sequences,
            meta=self._metadata(generation),
        )

        with self._lock:
            if self._epoch == epoch:
                self._cached_snapshot = snapshot
        return snapshot

    def matrix(self) -> np.ndarray:
        """Read-only (n_columns, n_bins) spectrogram matrix."""
        return self.snapshot().matrix

    def frequency_axis(self) -> np.ndarray:
        """Bin frequencies in Hz, or bin indices when the sample rate is unknown."""
        return self._frequency_axis.copy()

    def stats(self) -> EngineStats:
        """Summary statistics, computed on demand."""
        with self._lock:
            latest = self._history.latest()
            counters = dict(
                frames_received=self._frames_received,
                frames_rejected=self._frames_rejected,
                columns_produced=self._columns_produced,
                columns_evicted=self._columns_evicted,
                window_fill=len(self._window),
                history_fill=len(self._history),
                last_amplitude=self._last_amplitude,
                last_transform_duration_s=self._last_transform_duration_s,
            )

        if latest is not None:
            dominant_bin = int(np.argmax(latest))
            counters["dominant_bin"] = dominant_bin
            counters["mean_intensity"] = float(np.mean(latest))
            if self._config.sample_rate_hz is not None:
                counters["dominant_frequency_hz"] = float(self._frequency_axis[dominant_bin])

        return EngineStats(**counters)

    def __repr__(self) -> str:
        return (
            f"DopplerSpectrogram(window_size={self.window_size}, "
            f"history={self.history}, n_bins={self.n_bins})"
        )
