"""Paginated, memory-bounded photo gallery core."""

__version__ = "0.1.0"
