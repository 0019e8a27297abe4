"""
contracts

Core data contracts for the streaming CSI Doppler spectrogram engine.

This package defines strict, documented dataclasses that form the data contracts
between the frame decoder, the Doppler engine, and visualization sinks.

All contracts are immutable (frozen dataclasses) with runtime validation.
Modules can evolve independently as long as they honor these contracts.

Contracts
---------
CSI Layer:
    CSIFrame : One CSI measurement (per-subcarrier real/imag parts)

Spectral Layer:
    SpectralColumn : One normalized frequency-bin magnitude vector
    SpectrogramMetadata : Axis and configuration metadata
    SpectrogramSnapshot : Immutable time x frequency view of the history
    EngineStats : Engine summary statistics

Errors:
    ValidationError : Base class of all contract violations
    InvalidFrame : Frame that cannot be reduced to an amplitude sample
    ConfigurationError : Invalid engine or adapter parameters
"""

from contracts.csi import CSIFrame
from contracts.spectral import (
    EngineStats,
    SpectralColumn,
    SpectrogramMetadata,
    SpectrogramSnapshot,
)
from contracts.validation import (
    ConfigurationError,
    InvalidFrame,
    ValidationError,
    validate_finite,
    validate_finite_scalar,
    validate_int_at_least,
    validate_ndim,
    validate_positive,
    validate_range,
    validate_unit_interval,
)

__all__ = [
    # CSI
    "CSIFrame",
    # Spectral
    "SpectralColumn",
    "SpectrogramMetadata",
    "SpectrogramSnapshot",
    "EngineStats",
    # Errors
    "ValidationError",
    "InvalidFrame",
    "ConfigurationError",
    # Validation
    "validate_ndim",
    "validate_finite",
    "validate_finite_scalar",
    "validate_positive",
    "validate_int_at_least",
    "validate_range",
    "validate_unit_interval",
]
