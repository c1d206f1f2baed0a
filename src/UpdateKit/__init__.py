"""UpdateKit: resolve and download package updates from multiple sources."""

__version__ = "0.1.0"

__all__ = ["__version__"]
