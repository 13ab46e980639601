"""cryptodash - live crypto price feed backend."""

__version__ = "0.1.0"
