"""
doppler package

Streaming magnitude Doppler spectrogram.

Data flow:
    CSIFrame -> reduce_frame -> SlidingWindow -> SpectralTransform
    -> SpectrogramHistory -> SpectrogramSnapshot

DopplerSpectrogram wires these stages together behind a thread-safe
push/snapshot interface.
"""

from doppler.config import EngineConfig, NormalizationPolicy
from doppler.engine import DopplerSpectrogram
from doppler.reducer import reduce_frame, subcarrier_magnitudes
from doppler.ring_buffer import RingBuffer, SlidingWindow, SpectrogramHistory
from doppler.transform import (
    SpectralTransform,
    hann_window,
    magnitude_spectrum,
    normalize_column,
)

__all__ = [
    "DopplerSpectrogram",
    "EngineConfig",
    "NormalizationPolicy",
    "reduce_frame",
    "subcarrier_magnitudes",
    "RingBuffer",
    "SlidingWindow",
    "SpectrogramHistory",
    "SpectralTransform",
    "hann_window",
    "magnitude_spectrum",
    "normalize_column",
]
