"""
Sbanken Provider Implementation

Sbanken exposes a REST API protected by OAuth2 client credentials.
The token endpoint is found through the OpenID discovery document.

Two API versions are supported:
- v1: /exec.bank/api/v1, requires a customerId header, transactions
  have no stable ID and include reservations
- v2: /api/v2 archive endpoint, transactions carry a transactionId and
  reservations are excluded

Documentation: https://publicapi.sbanken.no/openapi/apibeta/index.html
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote_plus

import httpx
from pydantic import ValidationError

from sbanken_ynab.config import Settings
from sbanken_ynab.app.schemas import (
    Account, AccountList, DiscoveryDocument, RawTransaction, TokenResponse, TransactionList
)
from .base import BaseBankProvider

logger = logging.getLogger(__name__)


API_BASE_URLS = {
    "v1": "https://api.sbanken.no",
    "v2": "https://publicapi.sbanken.no/apibeta",
}

ACCOUNTS_PATHS = {
    "v1": "/exec.bank/api/v1/Accounts",
    "v2": "/api/v2/Accounts",
}

TRANSACTIONS_PATHS = {
    "v1": "/exec.bank/api/v1/Transactions/{account_id}",
    "v2": "/api/v2/Transactions/archive/{account_id}",
}


class AuthenticationError(Exception):
    """Raised when discovery or the client credentials token request fails."""
    pass


class TransactionFetchError(Exception):
    """Raised when Sbanken accounts or transactions cannot be fetched or parsed."""
    pass


class SbankenProvider(BaseBankProvider):
    """
    Sbanken API integration.

    Special requirements:
    - Client id and secret are URL-encoded before HTTP basic authentication
    - v1 requests must carry the customerId header
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(settings, transport)

        self.api_version = settings.sbanken_api_version
        self.api_base_url = (settings.sbanken_api_base_url or API_BASE_URLS[self.api_version]).rstrip("/")

        if self.api_version == "v1" and not settings.sbanken_customer_id:
            raise ValueError("sbanken_customer_id must be configured for the v1 API")

    @property
    def discovery_url(self) -> str:
        return f"{self.settings.sbanken_discovery_endpoint.rstrip('/')}/.well-known/openid-configuration"

    async def authenticate(self) -> TokenResponse:
        """
        Authenticate with the client credentials flow.

        First the discovery document is fetched to find the token endpoint,
        then the application authenticates against that endpoint.
        The issuer name in the discovery document is not validated.

        Returns:
            TokenResponse with the bearer token

        Raises:
            AuthenticationError: If the identity server is unreachable,
                the discovery document is invalid or credentials are rejected
        """
        async with self._client() as client:
            try:
                response = await client.get(self.discovery_url, headers={'Accept': 'application/json'})
            except httpx.HTTPError as e:
                raise AuthenticationError(f"Could not reach Sbanken identity server: {e}") from e

            if not response.is_success:
                raise AuthenticationError(
                    f"Discovery failed with status {response.status_code}: {response.text}"
                )

            try:
                discovery = DiscoveryDocument.model_validate(response.json())
            except ValueError as e:
                raise AuthenticationError(f"Invalid discovery document: {e}") from e

            logger.debug(f"Token endpoint: {discovery.token_endpoint}")

            try:
                response = await client.post(
                    discovery.token_endpoint,
                    data={'grant_type': 'client_credentials'},
                    auth=(
                        quote_plus(self.settings.sbanken_client_id),
                        quote_plus(self.settings.sbanken_client_secret)
                    ),
                    headers={'Accept': 'application/json'}
                )
            except httpx.HTTPError as e:
                raise AuthenticationError(f"Token request failed: {e}") from e

            data = self._json_or_none(response)

            if not response.is_success or (isinstance(data, dict) and data.get('error')):
                detail = response.text
                if isinstance(data, dict):
                    detail = data.get('error_description') or data.get('error') or detail
                raise AuthenticationError(f"Sbanken authentication failed: {detail}")

            try:
                return TokenResponse.model_validate(data)
            except ValidationError as e:
                raise AuthenticationError(f"Invalid token response: {e}") from e

    async def fetch_accounts(self, access_token: str) -> List[Account]:
        data = await self._get(access_token, f"{self.api_base_url}{ACCOUNTS_PATHS[self.api_version]}")

        try:
            accounts = AccountList.model_validate(data).items
        except ValidationError as e:
            raise TransactionFetchError(f"Malformed account list from Sbanken: {e}") from e

        logger.info(f"Retrieved {len(accounts)} accounts from Sbanken")
        return accounts

    async def fetch_transactions(
        self,
        access_token: str,
        account_id: str,
        length: int
    ) -> List[RawTransaction]:
        """
        Fetch one page of recent transactions.

        Args:
            access_token: Bearer token from authenticate()
            account_id: Sbanken account ID
            length: Number of transactions to request

        Returns:
            Transactions ordered by accounting date, newest first

        Example:
            >>> token = await provider.authenticate()
            >>> transactions = await provider.fetch_transactions(
            ...     token.access_token, "ABC123", length=250
            ... )
        """
        path = TRANSACTIONS_PATHS[self.api_version].format(account_id=account_id)
        data = await self._get(access_token, f"{self.api_base_url}{path}", params={'length': length})

        try:
            transactions = TransactionList.model_validate(data).items
        except ValidationError as e:
            raise TransactionFetchError(f"Malformed transaction list from Sbanken: {e}") from e

        # Stable sort keeps the provider's order for equal dates
        transactions = sorted(transactions, key=lambda t: t.accounting_date, reverse=True)

        logger.info(f"Fetched {len(transactions)} transactions for account {account_id}")
        return transactions

    def _headers(self, access_token: str) -> Dict[str, str]:
        headers = {
            'Authorization': f'Bearer {access_token}',
            'Accept': 'application/json'
        }
        if self.api_version == "v1":
            headers['customerId'] = self.settings.sbanken_customer_id
        return headers

    async def _get(
        self,
        access_token: str,
        url: str,
        params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        async with self._client() as client:
            try:
                response = await client.get(url, params=params, headers=self._headers(access_token))
            except httpx.HTTPError as e:
                raise TransactionFetchError(f"Request to Sbanken failed: {e}") from e

            if not response.is_success:
                logger.error(f"Sbanken API error - Status: {response.status_code}")
                logger.error(f"Response body: {response.text}")
                logger.error(f"Request URL: {response.url}")
                raise TransactionFetchError(f"Sbanken error {response.status_code}: {response.text}")

            data = self._json_or_none(response)
            if not isinstance(data, dict):
                raise TransactionFetchError(f"Expected JSON object from Sbanken, got: {response.text[:200]}")

            # v1 reports some errors in the body of a 200 response
            if data.get('isError') or data.get('IsError'):
                message = data.get('errorMessage') or data.get('ErrorMessage') or 'Unknown error'
                raise TransactionFetchError(f"Sbanken error: {message}")

            return data

    @staticmethod
    def _json_or_none(response: httpx.Response) -> Optional[Any]:
        try:
            return response.json()
        except ValueError:
            return None
