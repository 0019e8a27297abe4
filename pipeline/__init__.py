"""
pipeline package

Drivers moving CSI frames into the Doppler engine: a synchronous
step-wise loop and a latest-wins background ingest worker.
"""

from pipeline.ingest_worker import FrameMailbox, IngestWorker
from pipeline.update_loop import FrameSource, UpdateLoop

__all__ = ["FrameMailbox", "IngestWorker", "FrameSource", "UpdateLoop"]
