"""
Bank Provider Implementations

Abstract base class and the Sbanken implementation.
"""

from .base import BaseBankProvider
from .sbanken import AuthenticationError, SbankenProvider, TransactionFetchError

__all__ = ['BaseBankProvider', 'SbankenProvider', 'AuthenticationError', 'TransactionFetchError']
