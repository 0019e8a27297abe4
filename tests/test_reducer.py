"""
tests/test_reducer.py

Unit tests for the magnitude reducer.
"""

import pytest
import numpy as np

from contracts import CSIFrame, InvalidFrame
from doppler.reducer import reduce_frame, subcarrier_magnitudes


class TestSubcarrierMagnitudes:
    """Tests for per-subcarrier magnitudes."""

    def test_pythagorean(self):
        """Test sqrt(re^2 + im^2) per subcarrier."""
        frame = CSIFrame.from_interleaved([3, 4, 6, 8, 0, 0])
        np.testing.assert_allclose(subcarrier_magnitudes(frame), [5.0, 10.0, 0.0])

    def test_rejects_non_frame(self):
        """Test that raw arrays are not accepted."""
        with pytest.raises(TypeError):
            subcarrier_magnitudes(np.ones(4))


class TestReduceFrame:
    """Tests for reduce_frame."""

    def test_mean_magnitude(self):
        """Test the mean over subcarriers."""
        frame = CSIFrame.from_interleaved([3, 4, 6, 8])
        assert reduce_frame(frame) == pytest.approx(7.5)

    def test_single_subcarrier(self):
        """Test a one-subcarrier frame."""
        frame = CSIFrame(real=np.array([-2.0]), imag=np.array([0.0]))
        assert reduce_frame(frame) == pytest.approx(2.0)

    def test_result_is_python_float(self):
        """Test the sample type."""
        frame = CSIFrame(real=np.ones(8), imag=np.zeros(8))
        assert isinstance(reduce_frame(frame), float)

    def test_non_negative(self):
        """Test that negative components still give a non-negative sample."""
        frame = CSIFrame(real=-np.ones(4), imag=-np.ones(4))
        assert reduce_frame(frame) >= 0.0

    def test_empty_frame(self):
        """Test that N = 0 is rejected."""
        frame = CSIFrame(real=np.array([]), imag=np.array([]))
        with pytest.raises(InvalidFrame, match="no subcarriers"):
            reduce_frame(frame)

    def test_nan_frame(self):
        """Test that NaN components are rejected."""
        frame = CSIFrame(real=np.array([1.0, np.nan]), imag=np.zeros(2))
        with pytest.raises(InvalidFrame):
            reduce_frame(frame)

    def test_inf_frame(self):
        """Test that infinite components are rejected."""
        frame = CSIFrame(real=np.zeros(2), imag=np.array([np.inf, 0.0]))
        with pytest.raises(InvalidFrame):
            reduce_frame(frame)

    def test_overflowing_frame(self):
        """Test that finite components whose magnitude overflows are rejected."""
        big = np.finfo(np.float64).max
        frame = CSIFrame(real=np.array([big, big]), imag=np.array([big, big]))
        with pytest.raises(InvalidFrame):
            reduce_frame(frame)
