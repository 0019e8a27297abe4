"""
contracts/validation.py

Lightweight validation utilities for contract enforcement.

Provides dimensionality, finiteness, integer-bound and range checks used by
the CSI contracts and by the engine configuration. All validators raise
ValidationError (or one of its subclasses) on failure.

Usage
-----
>>> from contracts.validation import validate_ndim, validate_finite
>>> validate_ndim(arr, 1, "real")
>>> validate_finite(arr, "real")
"""

import math
from typing import Any, Optional, Type

import numpy as np


class ValidationError(ValueError):
    """
    Raised when a contract validation fails.

    Subclass of ValueError for compatibility with existing error handling.
    """

    pass


class InvalidFrame(ValidationError):
    """
    Raised when a CSI frame cannot be reduced to an amplitude sample.

    Covers frames with zero subcarriers and frames carrying non-finite
    real or imaginary parts.
    """

    pass


class ConfigurationError(ValidationError):
    """Raised when an engine or adapter is constructed with invalid parameters."""

    pass


def validate_ndim(
    array: np.ndarray,
    expected_ndim: int,
    name: str = "array",
) -> None:
    """
    Validate that array has the expected number of dimensions.

    Parameters
    ----------
    array : np.ndarray
        Array to validate.
    expected_ndim : int
        Expected number of dimensions.
    name : str
        Name for error messages.

    Raises
    ------
    TypeError
        If array is not a numpy array.
    ValidationError
        If ndim does not match.
    """
    if not isinstance(array, np.ndarray):
        raise TypeError(f"{name} must be a numpy ndarray, got {type(array).__name__}")

    if array.ndim != expected_ndim:
        raise ValidationError(
            f"{name} must be {expected_ndim}D, got {array.ndim}D with shape {array.shape}"
        )


def validate_finite(
    array: np.ndarray,
    name: str = "array",
    error: Type[ValidationError] = ValidationError,
) -> None:
    """
    Validate that all array elements are finite (not inf or nan).

    Parameters
    ----------
    array : np.ndarray
        Array to validate.
    name : str
        Name for error messages.
    error : type, optional
        ValidationError subclass to raise. Defaults to ValidationError.

    Raises
    ------
    ValidationError
        If any element is inf or nan.
    """
    if not isinstance(array, np.ndarray):
        raise TypeError(f"{name} must be a numpy ndarray, got {type(array).__name__}")

    if not np.all(np.isfinite(array)):
        n_inf = int(np.sum(np.isinf(array)))
        n_nan = int(np.sum(np.isnan(array)))
        raise error(
            f"{name} contains non-finite values: {n_inf} inf, {n_nan} nan"
        )


def validate_finite_scalar(
    value: float,
    name: str = "value",
    error: Type[ValidationError] = ValidationError,
) -> None:
    """
    Validate that a scalar value is finite.

    Raises
    ------
    TypeError
        If value is not numeric.
    ValidationError
        If value is inf or nan.
    """
    try:
        float_val = float(value)
    except (TypeError, ValueError) as e:
        raise TypeError(f"{name} must be numeric, got {type(value).__name__}") from e

    if not math.isfinite(float_val):
        raise error(f"{name} must be finite, got {value}")


def validate_positive(
    value: float,
    name: str = "value",
    allow_zero: bool = False,
    error: Type[ValidationError] = ValidationError,
) -> None:
    """
    Validate that a value is positive.

    Parameters
    ----------
    value : float
        Value to validate.
    name : str
        Name for error messages.
    allow_zero : bool
        If True, zero is acceptable.
    error : type, optional
        ValidationError subclass to raise.

    Raises
    ------
    ValidationError
        If value is not positive (or non-negative if allow_zero).
    """
    validate_finite_scalar(value, name, error=error)
    if allow_zero:
        if value < 0:
            raise error(f"{name} must be non-negative, got {value}")
    else:
        if value <= 0:
            raise error(f"{name} must be positive, got {value}")


def validate_int_at_least(
    value: Any,
    minimum: int,
    name: str = "value",
    error: Type[ValidationError] = ValidationError,
) -> None:
    """
    Validate that a value is an integer no smaller than ``minimum``.

    Booleans are rejected even though they subclass int.

    Raises
    ------
    TypeError
        If value is not an integer.
    ValidationError
        If value is below minimum.
    """
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise TypeError(f"{name} must be an int, got {type(value).__name__}")
    if value < minimum:
        raise error(f"{name} must be >= {minimum}, got {value}")


def validate_range(
    value: float,
    min_val: Optional[float],
    max_val: Optional[float],
    name: str = "value",
    inclusive: bool = True,
) -> None:
    """
    Validate that a value is within a range.

    Parameters
    ----------
    value : float
        Value to validate.
    min_val : float or None
        Minimum acceptable value. None for no lower bound.
    max_val : float or None
        Maximum acceptable value. None for no upper bound.
    name : str
        Name for error messages.
    inclusive : bool
        If True, bounds are inclusive.

    Raises
    ------
    ValidationError
        If value is outside the range.
    """
    if inclusive:
        if min_val is not None and value < min_val:
            raise ValidationError(f"{name} must be >= {min_val}, got {value}")
        if max_val is not None and value > max_val:
            raise ValidationError(f"{name} must be <= {max_val}, got {value}")
    else:
        if min_val is not None and value <= min_val:
            raise ValidationError(f"{name} must be > {min_val}, got {value}")
        if max_val is not None and value >= max_val:
            raise ValidationError(f"{name} must be < {max_val}, got {value}")


def validate_unit_interval(
    array: np.ndarray,
    name: str = "array",
) -> None:
    """
    Validate that every element of an array lies in [0, 1].

    Raises
    ------
    ValidationError
        If any element is non-finite or outside [0, 1].
    """
    validate_finite(array, name)
    if array.size and (np.min(array) < 0.0 or np.max(array) > 1.0):
        raise ValidationError(
            f"{name} values must be in [0, 1], "
            f"got range [{float(np.min(array))}, {float(np.max(array))}]"
        )
