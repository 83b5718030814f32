"""Read a git repository directly, show branch commits and diff their trees."""

__version__ = "0.1.0"

__all__ = ["__version__"]