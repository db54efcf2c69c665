"""Weather aggregation and cross-provider comparison."""

__version__ = "0.1.0"
