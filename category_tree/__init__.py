"""Category tree materialization over a single parent-linked table."""

__version__ = "0.1.0"
