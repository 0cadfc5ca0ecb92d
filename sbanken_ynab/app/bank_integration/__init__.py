"""
Bank Integration Module

Fetches transactions from Sbanken, normalizes and deduplicates them,
and transfers new ones to YNAB.
"""

from .service import BudgetSyncService
from .normalization import TransactionNormalizer
from .deduplication import TransactionDeduplicator

__all__ = ['BudgetSyncService', 'TransactionNormalizer', 'TransactionDeduplicator']
