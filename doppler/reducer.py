"""
reducer.py

Magnitude reducer: collapses one CSI frame into a single amplitude sample.

This is the only place where per-subcarrier data is consumed. Everything
downstream operates on the scalar time series. Doppler estimation is
magnitude-only; a phase-aware reducer would replace this module's functions
without touching the window or transform stages.
"""

import numpy as np

from contracts.csi import CSIFrame
from contracts.validation import InvalidFrame, validate_finite


def subcarrier_magnitudes(frame: CSIFrame) -> np.ndarray:
    """
    Per-subcarrier magnitudes of a frame.

    Parameters
    ----------
    frame : CSIFrame
        Frame to reduce.

    Returns
    -------
    np.ndarray
        sqrt(re^2 + im^2) for each subcarrier. Shape: (num_subcarriers,).

    Raises
    ------
    InvalidFrame
        If the frame has no subcarriers or carries non-finite values.
    """
    if not isinstance(frame, CSIFrame):
        raise TypeError(f"frame must be CSIFrame, got {type(frame).__name__}")

    if frame.num_subcarriers == 0:
        raise InvalidFrame("frame has no subcarriers")

    validate_finite(frame.real, "real", error=InvalidFrame)
    validate_finite(frame.imag, "imag", error=InvalidFrame)

    return np.hypot(frame.real, frame.imag)


def reduce_frame(frame: CSIFrame) -> float:
    """
    Reduce a CSI frame to its mean subcarrier magnitude.

    Parameters
    ----------
    frame : CSIFrame
        Frame with at least one subcarrier and finite values.

    Returns
    -------
    float
        Mean magnitude; finite and >= 0.

    Raises
    ------
    InvalidFrame
        If the frame is empty, non-finite, or its magnitudes overflow.
    """
    with np.errstate(over="ignore"):
        sample = float(np.mean(subcarrier_magnitudes(frame)))

    # hypot of two huge finite values can still overflow to inf
    if not np.isfinite(sample):
        raise InvalidFrame(f"frame amplitude is not finite: {sample}")

    return sample
