"""HedRap Arena backend: contract-backed battles and governance with a document cache."""

__version__ = "0.1.0"
