"""
adapter.py

Visualization adapter: spectrogram snapshot -> buffers an external sink consumes.

Converts a SpectrogramSnapshot into
- an 8-bit grayscale tensor (for image/tensor loggers),
- an 8-bit RGB heatmap through a matplotlib colormap,
- a JSON-serializable payload with axis labels (for WebSocket dashboards).

Performs no rendering or I/O and never mutates the snapshot.
All conversions are deterministic given the same inputs.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

import numpy as np
import matplotlib
from matplotlib.colors import Colormap

from contracts.spectral import SpectrogramSnapshot
from contracts.validation import ConfigurationError, validate_finite_scalar

FREQ_TIME = "freq_time"
TIME_FREQ = "time_freq"
_LAYOUTS = (FREQ_TIME, TIME_FREQ)


class IntensityScale(str, Enum):
    """Mapping from normalized magnitude to display intensity."""

    LINEAR = "linear"
    LOG = "log"


@dataclass
class AdapterConfig:
    """
    Adapter configuration parameters.

    Attributes
    ----------
    layout : str
        ``"freq_time"``: image rows are frequency bins, columns are time
        (oldest left). ``"time_freq"``: rows are time (oldest first),
        columns are bins (DC first).
    dc_at_bottom : bool
        For ``freq_time`` only: put the DC bin in the last image row so it
        is drawn at the bottom by sinks whose row 0 is the top.
    scale : IntensityScale or str
        LINEAR keeps normalized magnitudes; LOG maps them through decibels.
    db_floor : float
        Lowest displayed level for LOG, in dB (negative). Values at or below
        it map to 0.
    cmap : str or Colormap
        matplotlib colormap used by to_heatmap.
    """

    layout: str = FREQ_TIME
    dc_at_bottom: bool = True
    scale: Union[IntensityScale, str] = IntensityScale.LINEAR
    db_floor: float = -60.0
    cmap: Union[str, Colormap] = "inferno"

    def __post_init__(self) -> None:
        if self.layout not in _LAYOUTS:
            raise ConfigurationError(
                f"layout must be one of {_LAYOUTS}, got {self.layout!r}"
            )
        try:
            self.scale = IntensityScale(self.scale)
        except ValueError as e:
            raise ConfigurationError(f"unknown intensity scale {self.scale!r}") from e

        validate_finite_scalar(self.db_floor, "db_floor", error=ConfigurationError)
        if self.db_floor >= 0:
            raise ConfigurationError(f"db_floor must be negative, got {self.db_floor}")

        if not isinstance(self.cmap, (str, Colormap)):
            raise TypeError(f"cmap must be str or Colormap, got {type(self.cmap).__name__}")


def scale_intensity(
    values: np.ndarray,
    scale: Union[IntensityScale, str] = IntensityScale.LINEAR,
    db_floor: float = -60.0,
) -> np.ndarray:
    """
    Map normalized magnitudes in [0, 1] to display intensities in [0, 1].

    Parameters
    ----------
    values : np.ndarray
        Normalized magnitudes.
    scale : IntensityScale or str
        LINEAR or LOG.
    db_floor : float
        Lowest displayed level for LOG, in dB.

    Returns
    -------
    np.ndarray
        Intensities in [0, 1], same shape as values.
    """
    values = np.clip(np.asarray(values, dtype=np.float64), 0.0, 1.0)

    if IntensityScale(scale) is IntensityScale.LINEAR:
        return values

    if db_floor >= 0:
        raise ConfigurationError(f"db_floor must be negative, got {db_floor}")
    floor_linear = 10.0 ** (db_floor / 20.0)
    db = 20.0 * np.log10(np.maximum(values, floor_linear))
    return np.clip((db - db_floor) / (-db_floor), 0.0, 1.0)


def _oriented(
    snapshot: SpectrogramSnapshot,
    config: AdapterConfig,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Scaled image in the configured layout plus the frequency axis in image order.
    """
    intensities = scale_intensity(snapshot.matrix, config.scale, config.db_floor)
    frequencies = snapshot.frequency_axis()

    if config.layout == TIME_FREQ:
        return intensities, frequencies

    image = intensities.T
    if config.dc_at_bottom:
        image = image[::-1]
        frequencies = frequencies[::-1]
    return image, frequencies


def to_tensor(
    snapshot: SpectrogramSnapshot,
    config: Optional[AdapterConfig] = None,
) -> np.ndarray:
    """
    8-bit grayscale image of the spectrogram.

    Parameters
    ----------
    snapshot : SpectrogramSnapshot
        Source spectrogram.
    config : AdapterConfig, optional
        Layout and scaling. Defaults to AdapterConfig().

    Returns
    -------
    np.ndarray
        uint8 array, (n_bins, n_columns) for ``freq_time`` or
        (n_columns, n_bins) for ``time_freq``. Zero-width when the snapshot
        is empty.
    """
    config = config or AdapterConfig()
    image, _ = _oriented(snapshot, config)
    return np.ascontiguousarray(np.round(image * 255.0).astype(np.uint8))


def to_heatmap(
    snapshot: SpectrogramSnapshot,
    config: Optional[AdapterConfig] = None,
) -> np.ndarray:
    """
    RGB heatmap of the spectrogram through a matplotlib colormap.

    Parameters
    ----------
    snapshot : SpectrogramSnapshot
        Source spectrogram.
    config : AdapterConfig, optional
        Layout, scaling and colormap. Defaults to AdapterConfig().

    Returns
    -------
    np.ndarray
        uint8 array with a trailing RGB axis: the to_tensor shape + (3,).
    """
    config = config or AdapterConfig()
    image, _ = _oriented(snapshot, config)

    cmap = config.cmap
    if isinstance(cmap, str):
        cmap = matplotlib.colormaps[cmap]

    rgba = cmap(image, bytes=True)
    return np.ascontiguousarray(rgba[..., :3])


def to_payload(
    snapshot: SpectrogramSnapshot,
    config: Optional[AdapterConfig] = None,
) -> Dict[str, Any]:
    """
    JSON-serializable description of the spectrogram.

    Parameters
    ----------
    snapshot : SpectrogramSnapshot
        Source spectrogram.
    config : AdapterConfig, optional
        Layout and scaling. Defaults to AdapterConfig().

    Returns
    -------
    Dict[str, Any]
        Keys: ``layout``, ``shape``, ``scale``, ``data`` (nested lists of
        intensities in [0, 1], image order), ``time_axis`` (column timestamps,
        oldest first), ``frequency_axis`` (in image order),
        ``frequency_unit`` (``"Hz"`` or ``"bin"``) and ``metadata``.
    """
    config = config or AdapterConfig()
    image, frequencies = _oriented(snapshot, config)

    return {
        "layout": config.layout,
        "shape": [int(image.shape[0]), int(image.shape[1])],
        "scale": IntensityScale(config.scale).value,
        "data": image.tolist(),
        "time_axis": snapshot.timestamps.tolist(),
        "frequency_axis": frequencies.tolist(),
        "frequency_unit": "bin" if snapshot.meta.sample_rate_hz is None else "Hz",
        "metadata": snapshot.meta.to_dict(),
    }
