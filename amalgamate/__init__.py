"""Combine C++ source files and their included headers into one file."""

__version__ = "1.0.1"
__all__ = ["__version__"]