"""Top-level package for echocraft."""

from . import config, fallback, polisher, providers, storage

__version__ = "0.1.0"

__all__ = ["config", "fallback", "polisher", "providers", "storage", "__version__"]
