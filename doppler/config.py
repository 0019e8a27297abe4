"""
config.py

Construction parameters for the Doppler spectrogram engine.

EngineConfig is a plain dataclass: an external loader (file, CLI, UI) builds
one and hands it to DopplerSpectrogram.from_config. Validation happens once,
at construction, so a bad window size or history depth fails fast instead of
surfacing mid-stream.
"""

from dataclasses import dataclass, asdict, fields
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

from contracts.validation import (
    ConfigurationError,
    validate_int_at_least,
    validate_positive,
)


class NormalizationPolicy(str, Enum):
    """
    How a spectral column is scaled into [0, 1].

    PER_COLUMN
        Divide by the column's own maximum. Stable contrast per frame;
        absolute amplitude is not comparable across time.
    FIXED_REFERENCE
        Divide by a configured reference magnitude and clip to 1. Preserves
        cross-time comparability; may saturate or wash out.
    """

    PER_COLUMN = "per_column"
    FIXED_REFERENCE = "fixed_reference"


@dataclass
class EngineConfig:
    """Doppler engine configuration parameters."""

    # 128 samples at ~100 Hz is roughly 1.3 s per column
    window_size: int = 128
    history: int = 200

    sample_rate_hz: Optional[float] = None

    normalization: Union[NormalizationPolicy, str] = NormalizationPolicy.PER_COLUMN
    reference_magnitude: float = 1.0
    epsilon: float = 1e-12

    remove_dc: bool = False

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """
        Check every parameter and coerce the policy to NormalizationPolicy.

        Raises
        ------
        ConfigurationError
            If any parameter is out of range.
        """
        validate_int_at_least(self.window_size, 2, "window_size", error=ConfigurationError)
        validate_int_at_least(self.history, 1, "history", error=ConfigurationError)

        if self.sample_rate_hz is not None:
            validate_positive(self.sample_rate_hz, "sample_rate_hz", error=ConfigurationError)
            self.sample_rate_hz = float(self.sample_rate_hz)

        try:
            self.normalization = NormalizationPolicy(self.normalization)
        except ValueError as e:
            choices = ", ".join(p.value for p in NormalizationPolicy)
            raise ConfigurationError(
                f"normalization must be one of ({choices}), got {self.normalization!r}"
            ) from e

        validate_positive(self.reference_magnitude, "reference_magnitude", error=ConfigurationError)
        validate_positive(self.epsilon, "epsilon", error=ConfigurationError)

        if not isinstance(self.remove_dc, bool):
            raise TypeError(f"remove_dc must be bool, got {type(self.remove_dc).__name__}")

    @property
    def n_bins(self) -> int:
        """Column length: window_size // 2 + 1."""
        return self.window_size // 2 + 1

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EngineConfig":
        """Build a config from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["normalization"] = NormalizationPolicy(self.normalization).value
        return data
