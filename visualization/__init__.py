"""
visualization package

Converts spectrogram snapshots into buffers consumed by external renderers.
"""

from visualization.adapter import (
    AdapterConfig,
    IntensityScale,
    scale_intensity,
    to_heatmap,
    to_payload,
    to_tensor,
)

__all__ = [
    "AdapterConfig",
    "IntensityScale",
    "scale_intensity",
    "to_tensor",
    "to_heatmap",
    "to_payload",
]
