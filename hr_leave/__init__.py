"""HR leave lifecycle, balance ledger and daily attendance generation."""

__version__ = "1.0.0"
