"""
tests/test_engine.py

Behavior tests for the DopplerSpectrogram engine.
"""

import logging
import threading

import pytest
import numpy as np

from contracts import CSIFrame, ConfigurationError, InvalidFrame, SpectrogramSnapshot
from csi.synthetic_csi import SyntheticCSIGenerator
from doppler.config import EngineConfig, NormalizationPolicy
from doppler.engine import DopplerSpectrogram


def _frame(amplitude, timestamp=0.0, n=4):
    return CSIFrame(real=np.full(n, float(amplitude)), imag=np.zeros(n), timestamp=timestamp)


def _empty_frame(timestamp=0.0):
    return CSIFrame(real=np.array([]), imag=np.array([]), timestamp=timestamp)


# =============================================================================
# Construction
# =============================================================================


class TestConstruction:
    """Tests for engine configuration."""

    def test_defaults(self):
        """Test default window, history and bin count."""
        engine = DopplerSpectrogram()
        assert engine.window_size == 128
        assert engine.history == 200
        assert engine.n_bins == 65
        assert engine.config.normalization is NormalizationPolicy.PER_COLUMN
        assert engine.config.remove_dc is False

    @pytest.mark.parametrize("window_size", [0, 1, -4])
    def test_window_too_small(self, window_size):
        """Test that window_size < 2 raises."""
        with pytest.raises(ConfigurationError):
            DopplerSpectrogram(window_size=window_size)

    def test_zero_history(self):
        """Test that history = 0 raises."""
        with pytest.raises(ConfigurationError):
            DopplerSpectrogram(window_size=4, history=0)

    def test_non_integer_window(self):
        """Test that fractional window sizes raise."""
        with pytest.raises(TypeError):
            DopplerSpectrogram(window_size=4.5)

    def test_unknown_normalization(self):
        """Test that unknown policies raise."""
        with pytest.raises(ConfigurationError, match="normalization"):
            DopplerSpectrogram(window_size=4, normalization="loudest")

    def test_invalid_sample_rate(self):
        """Test that a non-positive sample rate raises."""
        with pytest.raises(ConfigurationError):
            DopplerSpectrogram(window_size=4, sample_rate_hz=0.0)

    def test_from_config(self):
        """Test building from an EngineConfig."""
        config = EngineConfig(
            window_size=8,
            history=5,
            sample_rate_hz=100.0,
            normalization="fixed_reference",
            reference_magnitude=20.0,
        )
        engine = DopplerSpectrogram.from_config(config)
        assert engine.n_bins == 5
        assert engine.config.normalization is NormalizationPolicy.FIXED_REFERENCE
        assert engine.config.reference_magnitude == 20.0
        assert engine.frequency_axis()[-1] == pytest.approx(50.0)

    def test_config_from_dict_ignores_unknown(self):
        """Test tolerant dictionary loading."""
        config = EngineConfig.from_dict({"window_size": 16, "theme": "dark"})
        assert config.window_size == 16
        assert config.n_bins == 9
        assert config.to_dict()["normalization"] == "per_column"


# =============================================================================
# Write path
# =============================================================================


class TestPushFrame:
    """Tests for frame ingestion."""

    def test_no_column_while_filling(self):
        """Test that pushes before the window fills produce nothing."""
        engine = DopplerSpectrogram(window_size=4, history=10)
        for i in range(3):
            assert engine.push_frame(_frame(1.0, timestamp=i)) is None
        assert engine.window_len() == 3
        assert engine.history_len() == 0
        assert engine.snapshot().is_empty

    def test_zero_window_column(self):
        """Test that four zero samples give one finite, flat 3-bin column."""
        engine = DopplerSpectrogram(window_size=4, history=10)
        for i in range(3):
            engine.push_sample(0.0, timestamp=i)
        column = engine.push_sample(0.0, timestamp=3.0)

        assert column is not None
        assert column.n_bins == 3
        assert column.timestamp == 3.0
        assert column.sequence == 0
        assert np.all(np.isfinite(column.values))
        assert np.all(column.values == column.values[0])

    def test_one_column_per_push_once_full(self):
        """Test that every push after the window fills adds a column."""
        engine = DopplerSpectrogram(window_size=4, history=100)
        for i in range(10):
            engine.push_frame(_frame(1.0 + i % 3, timestamp=i))
        assert engine.history_len() == 7
        assert engine.generation == 7
        np.testing.assert_array_equal(engine.snapshot().sequences, np.arange(7))

    def test_window_holds_latest_samples(self):
        """Test the sliding window contents."""
        engine = DopplerSpectrogram(window_size=3, history=2)
        for amplitude in [1.0, 2.0, 3.0, 4.0, 5.0]:
            engine.push_frame(_frame(amplitude))
        np.testing.assert_allclose(engine.window_snapshot(), [3.0, 4.0, 5.0])

    def test_history_eviction(self):
        """Test FIFO eviction of old columns."""
        engine = DopplerSpectrogram(window_size=2, history=3)
        for i in range(10):
            engine.push_sample(float(i), timestamp=float(i))

        snapshot = engine.snapshot()
        assert snapshot.n_columns == 3
        np.testing.assert_array_equal(snapshot.sequences, [6, 7, 8])
        np.testing.assert_allclose(snapshot.timestamps, [7.0, 8.0, 9.0])

        stats = engine.stats()
        assert stats.columns_produced == 9
        assert stats.columns_evicted == 6

    def test_empty_frame_leaves_window_unchanged(self):
        """Test that an N = 0 frame raises and mutates nothing."""
        engine = DopplerSpectrogram(window_size=4, history=10)
        for amplitude in [1.0, 2.0]:
            engine.push_frame(_frame(amplitude))
        before = engine.window_snapshot()

        with pytest.raises(InvalidFrame):
            engine.push_frame(_empty_frame())

        assert engine.window_len() == 2
        np.testing.assert_array_equal(engine.window_snapshot(), before)

    def test_rejected_frame_on_full_window(self):
        """Test that a rejected frame does not add or evict columns."""
        engine = DopplerSpectrogram(window_size=4, history=10)
        for i in range(6):
            engine.push_frame(_frame(1.0 + i))
        snapshot = engine.snapshot()
        window = engine.window_snapshot()

        bad = CSIFrame(real=np.array([np.nan, 1.0]), imag=np.zeros(2))
        with pytest.raises(InvalidFrame):
            engine.push_frame(bad)

        np.testing.assert_array_equal(engine.window_snapshot(), window)
        assert engine.snapshot() is snapshot

    def test_overflowing_transform_is_atomic(self):
        """Test that a window whose spectrum overflows is rejected whole."""
        engine = DopplerSpectrogram(window_size=8, history=4)
        huge = 1e308
        for _ in range(7):
            engine.push_sample(huge)

        with pytest.raises(InvalidFrame):
            engine.push_sample(huge)

        assert engine.window_len() == 7
        assert engine.history_len() == 0
        assert engine.stats().frames_rejected == 1

    def test_try_push_frame_skips_and_counts(self, caplog):
        """Test that malformed frames are logged and skipped."""
        engine = DopplerSpectrogram(window_size=4, history=10)
        with caplog.at_level(logging.WARNING, logger="doppler.engine"):
            assert engine.try_push_frame(_empty_frame(timestamp=2.5)) is None

        assert "malformed" in caplog.text
        stats = engine.stats()
        assert stats.frames_received == 1
        assert stats.frames_rejected == 1
        assert stats.frames_accepted == 0
        assert engine.window_len() == 0

    def test_push_sample_validation(self):
        """Test that negative or non-finite samples raise."""
        engine = DopplerSpectrogram(window_size=4)
        with pytest.raises(InvalidFrame):
            engine.push_sample(-1.0)
        with pytest.raises(InvalidFrame):
            engine.push_sample(float("nan"))
        assert engine.window_len() == 0

    def test_columns_in_unit_interval(self):
        """Test the normalized range of produced columns."""
        engine = DopplerSpectrogram(
            window_size=16, history=50, normalization="fixed_reference", reference_magnitude=1.0
        )
        rng = np.random.default_rng(3)
        for amplitude in rng.random(40) * 50.0:
            engine.push_sample(float(amplitude))
        matrix = engine.matrix()
        assert matrix.min() >= 0.0
        assert matrix.max() <= 1.0


# =============================================================================
# Read path
# =============================================================================


class TestSnapshot:
    """Tests for snapshots and statistics."""

    def test_empty_snapshot_shape(self):
        """Test the snapshot before any column."""
        engine = DopplerSpectrogram(window_size=8, history=5)
        snapshot = engine.snapshot()
        assert isinstance(snapshot, SpectrogramSnapshot)
        assert snapshot.shape == (0, 5)
        assert snapshot.meta.generation == 0

    def test_snapshot_cached_until_new_column(self):
        """Test that repeated snapshots return the same object."""
        engine = DopplerSpectrogram(window_size=2, history=5)
        for i in range(3):
            engine.push_sample(float(i))
        first = engine.snapshot()
        assert engine.snapshot() is first

        engine.push_sample(1.0)
        second = engine.snapshot()
        assert second is not first
        assert second.meta.generation == first.meta.generation + 1

    def test_reset_during_snapshot_does_not_cache_old_history(self, monkeypatch):
        """Test that a reset racing a snapshot never leaves a stale cached matrix."""
        engine = DopplerSpectrogram(window_size=4, history=5)
        for sample in [0.0, 1.0, 2.0, 3.0, 4.0]:
            engine.push_sample(sample)

        build_metadata = engine._metadata
        raced = []

        def reset_and_refill(generation):
            # Runs between the two locked sections of snapshot()
            if not raced:
                raced.append(True)
                engine.reset()
                for _ in range(5):
                    engine.push_sample(1.0)
            return build_metadata(generation)

        monkeypatch.setattr(engine, "_metadata", reset_and_refill)
        stale = engine.snapshot()
        fresh = engine.snapshot()

        reference = DopplerSpectrogram(window_size=4, history=5)
        for _ in range(5):
            reference.push_sample(1.0)

        assert fresh is not stale
        assert engine.generation == 2
        np.testing.assert_array_equal(fresh.matrix, reference.snapshot().matrix)
        np.testing.assert_array_equal(engine.matrix(), reference.matrix())

    def test_snapshot_is_detached(self):
        """Test that later pushes do not alter an earlier snapshot."""
        engine = DopplerSpectrogram(window_size=2, history=2)
        engine.push_sample(1.0)
        engine.push_sample(2.0)
        snapshot = engine.snapshot()
        frozen = snapshot.matrix.copy()

        for i in range(5):
            engine.push_sample(float(i))

        np.testing.assert_array_equal(snapshot.matrix, frozen)
        with pytest.raises(ValueError):
            snapshot.matrix[0, 0] = 0.5

    def test_snapshot_metadata(self):
        """Test configuration metadata carried by snapshots."""
        engine = DopplerSpectrogram(window_size=8, history=5, sample_rate_hz=40.0, remove_dc=True)
        meta = engine.snapshot().meta
        assert meta.window_size == 8
        assert meta.sample_rate_hz == 40.0
        assert meta.remove_dc is True
        assert meta.normalization == "per_column"

    def test_stats_before_columns(self):
        """Test stats with a partially filled window."""
        engine = DopplerSpectrogram(window_size=4)
        engine.push_sample(2.0)
        stats = engine.stats()
        assert stats.window_fill == 1
        assert stats.last_amplitude == 2.0
        assert stats.dominant_bin is None
        assert stats.mean_intensity is None

    def test_synthetic_doppler_peak(self):
        """Test that a synthetic modulation shows up at its bin."""
        generator = SyntheticCSIGenerator(
            num_subcarriers=16,
            sample_rate_hz=64.0,
            doppler_hz=8.0,
            phase_noise_std=0.0,
            random_seed=0,
        )
        engine = DopplerSpectrogram(
            window_size=64, history=10, sample_rate_hz=64.0, remove_dc=True
        )
        for frame in generator.generate_sequence(64):
            engine.push_frame(frame)

        stats = engine.stats()
        assert stats.columns_produced == 1
        assert stats.dominant_bin == generator.doppler_bin(64) == 8
        assert stats.dominant_frequency_hz == pytest.approx(8.0)
        assert 0.0 < stats.mean_intensity <= 1.0

    def test_reset(self):
        """Test that reset clears state but keeps configuration."""
        engine = DopplerSpectrogram(window_size=2, history=3)
        for i in range(6):
            engine.push_sample(float(i))
        engine.try_push_frame(_empty_frame())
        engine.reset()

        assert engine.window_len() == 0
        assert engine.history_len() == 0
        assert engine.generation == 0
        assert engine.snapshot().is_empty
        stats = engine.stats()
        assert stats.frames_received == 0
        assert stats.frames_rejected == 0
        assert engine.window_size == 2

    def test_concurrent_reader_sees_consistent_snapshots(self):
        """Test snapshots taken while another thread pushes."""
        engine = DopplerSpectrogram(window_size=8, history=20)
        done = threading.Event()

        def writer():
            for i in range(2000):
                engine.push_sample(float(i % 7), timestamp=float(i))
            done.set()

        thread = threading.Thread(target=writer)
        thread.start()
        try:
            while not done.is_set():
                snapshot = engine.snapshot()
                assert snapshot.matrix.shape[0] == len(snapshot.timestamps)
                assert snapshot.matrix.shape[0] <= 20
                if snapshot.n_columns > 1:
                    assert np.all(np.diff(snapshot.sequences) == 1)
        finally:
            thread.join()

        assert engine.stats().columns_produced == 2000 - 7
