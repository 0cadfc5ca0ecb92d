"""
YNAB API Client

Thin wrapper around the YNAB REST API:
- List budgets and accounts, resolve them by name
- Create transactions

Documentation: https://api.ynab.com/v1
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from sbanken_ynab.config import Settings
from .schemas import Budget, SavedTransaction, SaveTransaction, YNABAccount

logger = logging.getLogger(__name__)

NamedItem = TypeVar("NamedItem", Budget, YNABAccount)


class BudgetingAPIError(Exception):
    """Raised when a YNAB API call fails."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class BudgetResolutionError(ValueError):
    """Raised when no budget or account name contains the configured selector."""
    pass


def select_by_name(items: Sequence[NamedItem], selector: str, kind: str) -> NamedItem:
    """
    Pick the first item whose name contains selector (case-sensitive).

    Args:
        items: Budgets or accounts in the order YNAB returned them
        selector: Substring to look for
        kind: "budget" or "account", used in messages

    Returns:
        First matching item

    Raises:
        BudgetResolutionError: If no name contains the selector
    """
    matches = [item for item in items if selector in item.name]
    if not matches:
        raise BudgetResolutionError(f"No YNAB {kind} name contains '{selector}'")

    if len(matches) > 1:
        names = ", ".join(item.name for item in matches)
        logger.warning(f"Several YNAB {kind}s match '{selector}' ({names}), using '{matches[0].name}'")

    return matches[0]


class YNABClient:
    """YNAB client authenticated with a personal access token."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self.base_url = settings.ynab_api_base_url.rstrip("/")
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.settings.http_timeout_seconds,
            transport=self.transport,
            headers={
                'Authorization': f'Bearer {self.settings.ynab_access_token}',
                'Accept': 'application/json'
            }
        )

    async def get_budgets(self) -> List[Budget]:
        data = await self._request("GET", "/budgets")
        return self._parse_list(Budget, data.get('budgets', []))

    async def get_accounts(self, budget_id: str) -> List[YNABAccount]:
        data = await self._request("GET", f"/budgets/{budget_id}/accounts")
        return self._parse_list(YNABAccount, data.get('accounts', []))

    async def resolve_budget(self, selector: str) -> Budget:
        budgets = await self.get_budgets()
        for budget in budgets:
            logger.info(f"Budget Name: {budget.name}")
        return select_by_name(budgets, selector, "budget")

    async def resolve_account(self, budget_id: str, selector: str) -> YNABAccount:
        accounts = await self.get_accounts(budget_id)
        for account in accounts:
            logger.info(f"Account Name: {account.name}")
        return select_by_name(accounts, selector, "account")

    async def create_transaction(
        self,
        budget_id: str,
        transaction: SaveTransaction
    ) -> Optional[SavedTransaction]:
        """
        Create a single transaction in a budget.

        If YNAB reports the import_id as a duplicate (409 Conflict, or
        duplicate_import_ids in the response), the transaction already exists
        upstream and None is returned.

        Args:
            budget_id: Target budget
            transaction: Transaction to create

        Returns:
            The created transaction, or None for a duplicate import_id

        Raises:
            BudgetingAPIError: If YNAB rejects the request
        """
        payload = {'transaction': transaction.model_dump(mode='json', exclude_none=True)}
        try:
            data = await self._request("POST", f"/budgets/{budget_id}/transactions", json=payload)
        except BudgetingAPIError as e:
            # Single-transaction create answers a known import_id with 409 Conflict
            if e.status_code == 409 and transaction.import_id:
                logger.warning(f"YNAB already has a transaction with import_id {transaction.import_id}")
                return None
            raise

        created = data.get('transaction')
        if created:
            try:
                return SavedTransaction.model_validate(created)
            except ValidationError as e:
                raise BudgetingAPIError(f"Unexpected transaction in YNAB response: {e}") from e

        if transaction.import_id and transaction.import_id in data.get('duplicate_import_ids', []):
            logger.warning(f"YNAB already has a transaction with import_id {transaction.import_id}")
            return None

        raise BudgetingAPIError(f"YNAB did not return the created transaction: {data}")

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        async with self._client() as client:
            try:
                response = await client.request(method, path, **kwargs)
            except httpx.HTTPError as e:
                raise BudgetingAPIError(f"YNAB request {method} {path} failed: {e}") from e

            if not response.is_success:
                logger.error(f"YNAB API error - Status: {response.status_code}, Body: {response.text}")
                raise BudgetingAPIError(
                    f"YNAB error {response.status_code} on {method} {path}: {self._error_detail(response)}",
                    status_code=response.status_code
                )

            try:
                body = response.json()
            except ValueError as e:
                raise BudgetingAPIError(f"YNAB returned invalid JSON for {method} {path}") from e

            data = body.get('data') if isinstance(body, dict) else None
            if not isinstance(data, dict):
                raise BudgetingAPIError(f"YNAB response for {method} {path} has no data object")
            return data

    @staticmethod
    def _parse_list(model: type, items: List[Dict[str, Any]]) -> List[BaseModel]:
        try:
            return [model.model_validate(item) for item in items]
        except ValidationError as e:
            raise BudgetingAPIError(f"Unexpected YNAB response: {e}") from e

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text
        error = body.get('error') if isinstance(body, dict) else None
        if isinstance(error, dict):
            return error.get('detail') or error.get('name') or response.text
        return response.text
