"""School record validation engine with duplicate and similarity detection."""

__version__ = "1.0.0"
