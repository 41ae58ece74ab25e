"""Async client and command line for the Moondream vision API."""

__version__ = "0.1.1"
__all__ = ["__version__"]