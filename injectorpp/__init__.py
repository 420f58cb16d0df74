"""Fake Python functions at runtime in unit tests and restore them afterwards.

Also includes x86-64 and AArch64 instruction encoders for jump patches.
"""

__version__ = "0.4.0"

__all__ = ["__version__"]