"""TokenHub: application registry and bearer-token service."""

__version__ = "0.1.0"
