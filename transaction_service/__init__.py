"""Transaction processing core for bank accounts."""

__version__ = "0.1.0"
