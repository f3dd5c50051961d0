"""HLS-aware media relay."""

__version__ = "0.1.0"
