"""Cross-chain swap route aggregation."""

__version__ = "0.1.0"
