"""
update_loop.py

Synchronous execution loop feeding CSI frames into the Doppler engine.

This module does not decode, transform, or render anything.
It orchestrates the sequence of operations at each step: pull one frame
from a source and push it into the engine on the caller's thread.

All time units are seconds.
"""

import logging
from typing import List, Optional, Protocol, runtime_checkable

from contracts.csi import CSIFrame
from contracts.spectral import SpectralColumn
from doppler.engine import DopplerSpectrogram

LOGGER = logging.getLogger(__name__)


@runtime_checkable
class FrameSource(Protocol):
    """
    Protocol for anything that yields CSI frames on demand.

    An upstream decoder or SyntheticCSIGenerator satisfies it.
    """

    def generate(self) -> CSIFrame:
        """
        Produce the next CSI frame.

        Returns
        -------
        CSIFrame
            The next frame in time order.
        """
        ...


class UpdateLoop:
    """
    Step-wise driver moving frames from a source into an engine.

    Each step:
    1. Pull the next frame from the source
    2. Push it into the engine (malformed frames are skipped and counted)
    3. Increment the step counter

    Parameters
    ----------
    source : FrameSource
        Frame producer.
    engine : DopplerSpectrogram
        Engine receiving the frames.

    Attributes
    ----------
    source : FrameSource
        Reference to the frame producer.
    engine : DopplerSpectrogram
        Reference to the engine.
    step_count : int
        Number of steps executed since initialization.
    """

    def __init__(
        self,
        source: FrameSource,
        engine: DopplerSpectrogram,
    ) -> None:
        """Initialize the update loop."""
        if not isinstance(source, FrameSource):
            raise TypeError(
                f"source must provide generate(), got {type(source).__name__}"
            )
        if not isinstance(engine, DopplerSpectrogram):
            raise TypeError(
                f"engine must be DopplerSpectrogram, got {type(engine).__name__}"
            )

        self._source = source
        self._engine = engine
        self._step_count = 0

    @property
    def source(self) -> FrameSource:
        """Reference to the frame producer."""
        return self._source

    @property
    def engine(self) -> DopplerSpectrogram:
        """Reference to the engine."""
        return self._engine

    @property
    def step_count(self) -> int:
        """Number of steps executed since initialization."""
        return self._step_count

    def step(self) -> Optional[SpectralColumn]:
        """
        Execute one step.

        Returns
        -------
        Optional[SpectralColumn]
            The column produced by this frame, or None while the window is
            filling or when the frame was rejected.
        """
        frame = self._source.generate()
        column = self._engine.try_push_frame(frame)

        self._step_count += 1

        return column

    def run(self, n_steps: int) -> List[SpectralColumn]:
        """
        Execute multiple steps.

        Parameters
        ----------
        n_steps : int
            Number of steps to execute. Must be non-negative.

        Returns
        -------
        List[SpectralColumn]
            Columns produced during the run, in order.

        Raises
        ------
        ValueError
            If n_steps is negative.
        """
        if n_steps < 0:
            raise ValueError(
                f"n_steps must be non-negative. Got {n_steps}."
            )

        columns: List[SpectralColumn] = []

        for _ in range(n_steps):
            column = self.step()
            if column is not None:
                columns.append(column)

        LOGGER.debug(
            "Update loop ran %d steps, produced %d columns", n_steps, len(columns)
        )
        return columns

    def reset_step_count(self) -> None:
        """Reset the step counter to zero."""
        self._step_count = 0
