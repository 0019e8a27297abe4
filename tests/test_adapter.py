"""
tests/test_adapter.py

Tests for the spectrogram visualization adapter.
"""

import json

import pytest
import numpy as np
import matplotlib

from contracts import ConfigurationError, SpectrogramMetadata, SpectrogramSnapshot
from doppler.engine import DopplerSpectrogram
from visualization.adapter import (
    AdapterConfig,
    IntensityScale,
    scale_intensity,
    to_heatmap,
    to_payload,
    to_tensor,
)


@pytest.fixture
def snapshot():
    """Two columns of a 4-sample window (3 bins)."""
    return SpectrogramSnapshot(
        matrix=np.array([[0.0, 0.5, 1.0], [1.0, 0.0, 0.25]]),
        timestamps=np.array([0.1, 0.2]),
        sequences=np.array([4, 5]),
        meta=SpectrogramMetadata(window_size=4, history=8),
    )


class TestAdapterConfig:
    """Tests for adapter configuration."""

    def test_defaults(self):
        """Test default layout and scale."""
        config = AdapterConfig()
        assert config.layout == "freq_time"
        assert config.dc_at_bottom is True
        assert config.scale is IntensityScale.LINEAR

    def test_scale_from_string(self):
        """Test that scale names are coerced."""
        assert AdapterConfig(scale="log").scale is IntensityScale.LOG

    def test_invalid_layout(self):
        """Test that unknown layouts raise."""
        with pytest.raises(ConfigurationError):
            AdapterConfig(layout="diagonal")

    def test_invalid_scale(self):
        """Test that unknown scales raise."""
        with pytest.raises(ConfigurationError):
            AdapterConfig(scale="cubic")

    def test_non_negative_db_floor(self):
        """Test that the dB floor must be negative."""
        with pytest.raises(ConfigurationError):
            AdapterConfig(db_floor=0.0)


class TestScaleIntensity:
    """Tests for intensity scaling."""

    def test_linear_identity(self):
        """Test that linear scaling keeps values."""
        values = np.array([0.0, 0.3, 1.0])
        np.testing.assert_allclose(scale_intensity(values), values)

    def test_log_scale(self):
        """Test decibel mapping against the floor."""
        out = scale_intensity(np.array([0.0, 0.1, 1.0]), "log", db_floor=-60.0)
        np.testing.assert_allclose(out, [0.0, 40.0 / 60.0, 1.0])

    def test_log_below_floor(self):
        """Test that values below the floor map to zero."""
        out = scale_intensity(np.array([1e-5]), IntensityScale.LOG, db_floor=-40.0)
        assert out[0] == 0.0


class TestToTensor:
    """Tests for to_tensor."""

    def test_freq_time_dc_at_bottom(self, snapshot):
        """Test default orientation: highest bin first, DC last."""
        tensor = to_tensor(snapshot)
        assert tensor.dtype == np.uint8
        assert tensor.shape == (3, 2)
        np.testing.assert_array_equal(tensor, [[255, 64], [128, 0], [0, 255]])

    def test_freq_time_dc_at_top(self, snapshot):
        """Test orientation without the flip."""
        tensor = to_tensor(snapshot, AdapterConfig(dc_at_bottom=False))
        np.testing.assert_array_equal(tensor, [[0, 255], [128, 0], [255, 64]])

    def test_time_freq(self, snapshot):
        """Test the transposed layout."""
        tensor = to_tensor(snapshot, AdapterConfig(layout="time_freq"))
        assert tensor.shape == (2, 3)
        np.testing.assert_array_equal(tensor, [[0, 128, 255], [255, 0, 64]])

    def test_empty_snapshot(self):
        """Test zero-width output before the first column."""
        empty = SpectrogramSnapshot.empty(SpectrogramMetadata(window_size=8, history=4))
        assert to_tensor(empty).shape == (5, 0)
        assert to_tensor(empty, AdapterConfig(layout="time_freq")).shape == (0, 5)

    def test_does_not_mutate(self, snapshot):
        """Test that the snapshot is unchanged."""
        before = snapshot.matrix.copy()
        to_tensor(snapshot, AdapterConfig(scale="log"))
        np.testing.assert_array_equal(snapshot.matrix, before)

    def test_from_engine(self):
        """Test conversion of a live engine snapshot."""
        engine = DopplerSpectrogram(window_size=16, history=5)
        for i in range(30):
            engine.push_sample(float(i % 4))
        tensor = to_tensor(engine.snapshot())
        assert tensor.shape == (9, 5)
        assert tensor.max() == 255


class TestToHeatmap:
    """Tests for to_heatmap."""

    def test_rgb_shape(self, snapshot):
        """Test the trailing RGB axis."""
        heatmap = to_heatmap(snapshot)
        assert heatmap.shape == (3, 2, 3)
        assert heatmap.dtype == np.uint8

    def test_gray_colormap(self, snapshot):
        """Test pixel colours through a grayscale map."""
        heatmap = to_heatmap(snapshot, AdapterConfig(cmap="gray"))
        np.testing.assert_array_equal(heatmap[0, 0], [255, 255, 255])
        np.testing.assert_array_equal(heatmap[2, 0], [0, 0, 0])

    def test_colormap_instance(self, snapshot):
        """Test that a Colormap object is accepted."""
        cmap = matplotlib.colormaps["viridis"]
        heatmap = to_heatmap(snapshot, AdapterConfig(cmap=cmap))
        expected = np.asarray(cmap(1.0, bytes=True))[:3]
        np.testing.assert_array_equal(heatmap[0, 0], expected)

    def test_unknown_colormap(self, snapshot):
        """Test that an unregistered colormap name raises."""
        with pytest.raises(KeyError):
            to_heatmap(snapshot, AdapterConfig(cmap="not-a-colormap"))


class TestToPayload:
    """Tests for to_payload."""

    def test_json_serializable(self, snapshot):
        """Test that the payload survives json.dumps."""
        payload = to_payload(snapshot)
        decoded = json.loads(json.dumps(payload))
        assert decoded["shape"] == [3, 2]
        assert decoded["layout"] == "freq_time"

    def test_axes(self, snapshot):
        """Test axis labels in image order."""
        payload = to_payload(snapshot)
        assert payload["time_axis"] == [0.1, 0.2]
        assert payload["frequency_axis"] == [2.0, 1.0, 0.0]
        assert payload["frequency_unit"] == "bin"
        assert payload["data"][2] == [0.0, 1.0]

    def test_hz_axis(self):
        """Test Hz labels when the sample rate is known."""
        snapshot = SpectrogramSnapshot.empty(
            SpectrogramMetadata(window_size=4, history=2, sample_rate_hz=100.0)
        )
        payload = to_payload(snapshot, AdapterConfig(layout="time_freq"))
        assert payload["frequency_unit"] == "Hz"
        assert payload["frequency_axis"] == [0.0, 25.0, 50.0]
        assert payload["shape"] == [0, 3]

    def test_metadata(self, snapshot):
        """Test that engine metadata is included."""
        payload = to_payload(snapshot)
        assert payload["metadata"]["n_bins"] == 3
        assert payload["metadata"]["window_size"] == 4
        assert payload["scale"] == "linear"
