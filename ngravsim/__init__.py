"""N-body components for several gravitational interaction classes: Peano-Hilbert
ordering, drift, periodic particle-mesh forces, potential corrections, snapshot
reading and restart files."""

__version__ = "0.1.0"
__all__ = [
    "peano",
    "tags",
    "predict",
    "read_ic",
    "pm_mesh",
    "pm_periodic",
    "potential",
    "restart",
]