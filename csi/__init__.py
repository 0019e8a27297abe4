"""
csi package

Channel State Information frame sources.

Frames themselves are defined in contracts.CSIFrame; this package holds
producers that emit them without a device.
"""

from csi.synthetic_csi import SyntheticCSIGenerator

__all__ = ['SyntheticCSIGenerator']
