"""
Abstract base class for bank integration providers

Defines the interface the sync service uses to talk to a bank API.
"""

from abc import ABC, abstractmethod
from typing import List, Optional
import httpx

from sbanken_ynab.config import Settings
from sbanken_ynab.app.schemas import Account, RawTransaction, TokenResponse


class BaseBankProvider(ABC):
    """
    Abstract base class for bank integration providers.

    Providers authenticate with the bank, list accounts and fetch one page
    of recent transactions for an account.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize provider with configuration.

        Args:
            settings: Application settings
            transport: Optional httpx transport, used to fake the bank API in tests
        """
        self.settings = settings
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.settings.http_timeout_seconds,
            transport=self.transport
        )

    @abstractmethod
    async def authenticate(self) -> TokenResponse:
        """
        Obtain an access token for the bank API.

        Returns:
            TokenResponse with access_token

        Raises:
            AuthenticationError: If discovery or token request fails
        """
        pass

    @abstractmethod
    async def fetch_accounts(self, access_token: str) -> List[Account]:
        """
        Fetch list of the customer's accounts.

        Args:
            access_token: Valid access token

        Returns:
            List of accounts
        """
        pass

    @abstractmethod
    async def fetch_transactions(
        self,
        access_token: str,
        account_id: str,
        length: int
    ) -> List[RawTransaction]:
        """
        Fetch the most recent transactions for an account.

        Args:
            access_token: Valid access token
            account_id: Provider account identifier
            length: Page length (number of transactions)

        Returns:
            Transactions ordered newest first

        Raises:
            TransactionFetchError: On HTTP errors or malformed responses
        """
        pass
