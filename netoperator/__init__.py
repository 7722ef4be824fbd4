"""Node pooling, manifest rendering and state reconciliation for a network operator."""

__version__ = "0.1.0"