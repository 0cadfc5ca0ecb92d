"""Sync recent Sbanken transactions into a YNAB budget."""

__version__ = "1.0.0"
