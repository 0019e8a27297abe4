"""
ingest_worker.py

Non-blocking handoff between a frame producer and the Doppler engine.

The producer (a UDP/serial reader callback) must never wait on the engine.
``FrameMailbox`` is a single-slot, latest-wins handoff: ``offer`` replaces any
frame still pending and counts the replaced one as dropped. Nothing queues
without bound, so a slow consumer costs dropped frames, never memory or
producer latency. ``IngestWorker`` is the daemon thread draining the mailbox
into the engine.
"""

import logging
import threading
from typing import Optional

from contracts.csi import CSIFrame
from doppler.engine import DopplerSpectrogram

LOGGER = logging.getLogger(__name__)


class FrameMailbox:
    """
    Single-slot latest-wins frame handoff.

    Attributes
    ----------
    offered : int
        Frames offered since construction.
    dropped : int
        Frames overwritten before they were taken.
    closed : bool
        True once close() was called.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._pending: Optional[CSIFrame] = None
        self._offered = 0
        self._dropped = 0
        self._closed = False

    @property
    def offered(self) -> int:
        with self._cond:
            return self._offered

    @property
    def dropped(self) -> int:
        with self._cond:
            return self._dropped

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def has_pending(self) -> bool:
        with self._cond:
            return self._pending is not None

    def offer(self, frame: CSIFrame) -> bool:
        """
        Publish a frame without blocking.

        Parameters
        ----------
        frame : CSIFrame
            The newest frame.

        Returns
        -------
        bool
            True if a pending frame was replaced (dropped). False if the slot
            was empty, or the mailbox is closed (the frame is discarded).
        """
        with self._cond:
            if self._closed:
                return False
            self._offered += 1
            replaced = self._pending is not None
            if replaced:
                self._dropped += 1
            self._pending = frame
            self._cond.notify()
            return replaced

    def take(self, timeout: Optional[float] = None) -> Optional[CSIFrame]:
        """
        Remove and return the pending frame, waiting up to ``timeout`` seconds.

        Returns
        -------
        Optional[CSIFrame]
            The newest frame, or None on timeout or once closed and empty.
        """
        with self._cond:
            self._cond.wait_for(
                lambda: self._pending is not None or self._closed, timeout=timeout
            )
            frame = self._pending
            self._pending = None
            return frame

    def close(self) -> None:
        """Stop accepting frames and wake any waiting consumer."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()


class IngestWorker:
    """
    Background thread moving frames from a mailbox into an engine.

    Parameters
    ----------
    engine : DopplerSpectrogram
        Engine receiving frames.
    mailbox : FrameMailbox, optional
        Handoff to drain. A private one is created if omitted.
    poll_interval_s : float, optional
        Maximum wait per take() so stop() is noticed promptly.

    Examples
    --------
    >>> with IngestWorker(engine) as worker:
    ...     worker.mailbox.offer(frame)
    """

    def __init__(
        self,
        engine: DopplerSpectrogram,
        mailbox: Optional[FrameMailbox] = None,
        poll_interval_s: float = 0.1,
    ) -> None:
        if poll_interval_s <= 0:
            raise ValueError(f"poll_interval_s must be positive. Got {poll_interval_s}.")
        self._engine = engine
        self._mailbox = mailbox if mailbox is not None else FrameMailbox()
        self._poll_interval_s = poll_interval_s
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._processed = 0

    @property
    def engine(self) -> DopplerSpectrogram:
        return self._engine

    @property
    def mailbox(self) -> FrameMailbox:
        return self._mailbox

    @property
    def processed(self) -> int:
        """Frames taken from the mailbox and handed to the engine."""
        return self._processed

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the worker thread (no-op if already running)."""
        if self.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run, name="doppler-ingest", daemon=True
        )
        self._thread.start()
        LOGGER.info("Doppler ingest worker started")

    def _run(self) -> None:
        while not self._stop_event.is_set():
            frame = self._mailbox.take(timeout=self._poll_interval_s)
            if frame is None:
                if self._mailbox.closed:
                    break
                continue
            self._engine.try_push_frame(frame)
            self._processed += 1

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the worker thread to exit without closing the mailbox."""
        thread = self._thread
        if thread is not None:
            thread.join(timeout=timeout)

    def stop(self, timeout: Optional[float] = None) -> None:
        """
        Drain the pending frame, close the mailbox and join the thread.

        The mailbox stays closed; start a new worker with a fresh mailbox to
        resume ingestion.

        Parameters
        ----------
        timeout : Optional[float]
            Maximum seconds to wait for the thread.
        """
        self._mailbox.close()
        self.join(timeout=timeout)
        self._stop_event.set()
        if self.is_alive():
            LOGGER.warning(
                "Doppler ingest worker still running after %ss; it exits after the current frame",
                timeout,
            )
            return
        LOGGER.info(
            "Doppler ingest worker stopped: processed=%d dropped=%d",
            self._processed,
            self._mailbox.dropped,
        )

    def __enter__(self) -> "IngestWorker":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
