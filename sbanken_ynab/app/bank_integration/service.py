"""
Budget Sync Service

Main orchestration service that handles:
- Authentication against Sbanken
- Fetching recent transactions
- Normalization and deduplication
- Creating new transactions in YNAB
"""

import logging
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional, Sequence

from sbanken_ynab.config import Settings
from sbanken_ynab.app.schemas import NormalizedTransaction, SaveTransaction
from sbanken_ynab.app.ynab_client import YNABClient

from .providers.base import BaseBankProvider
from .normalization import TransactionNormalizer, format_amount, format_round_trip
from .deduplication import TransactionDeduplicator

logger = logging.getLogger(__name__)

POSITIVE_FLAG_COLOR = "green"
PAYEE_NAME_MAX_LENGTH = 200


def to_milliunits(amount: Decimal) -> int:
    """
    Convert an amount to YNAB milliunits (value x 1000).

    The amount is rounded to three decimals (half away from zero) and the
    decimal point dropped; no banker's rounding.

    Example:
        >>> to_milliunits(Decimal("123.45"))
        123450
        >>> to_milliunits(Decimal("-0.5"))
        -500
    """
    rounded = Decimal(amount).quantize(Decimal("0.001"), rounding=ROUND_HALF_UP)
    return int(rounded * 1000)


def build_save_transaction(
    transaction: NormalizedTransaction,
    account_id: str,
    milliunits: int
) -> SaveTransaction:
    """
    Build the YNAB create request for a transaction.

    Transactions are created uncleared. Inflows (and zero amounts) get a green
    flag, outflows no flag. The Sbanken transaction ID, when present, is sent
    as import_id so YNAB also rejects duplicates.
    """
    return SaveTransaction(
        account_id=account_id,
        date=transaction.accounting_date.date(),
        amount=milliunits,
        cleared="uncleared",
        flag_color=POSITIVE_FLAG_COLOR if milliunits >= 0 else None,
        payee_name=transaction.text[:PAYEE_NAME_MAX_LENGTH] or None,
        import_id=transaction.provider_transaction_id
    )


def _describe(transaction: NormalizedTransaction) -> str:
    return f"{format_round_trip(transaction.accounting_date)}: {transaction.text} - {format_amount(transaction.amount)}"


class BudgetSyncService:
    """
    Sync Sbanken transactions into a YNAB account.

    Provides:
    - run(): the whole pipeline for one pass
    - transfer_transactions(): the dedup/transfer loop on normalized transactions
    """

    def __init__(
        self,
        settings: Settings,
        deduplicator: TransactionDeduplicator,
        provider: BaseBankProvider,
        ynab: YNABClient,
        normalizer: Optional[TransactionNormalizer] = None
    ):
        """
        Initialize service with its collaborators.

        Args:
            settings: Application settings
            deduplicator: Dedup store opened for this run
            provider: Bank provider
            ynab: YNAB API client
            normalizer: Transaction normalizer (built from settings if omitted)
        """
        self.settings = settings
        self.deduplicator = deduplicator
        self.provider = provider
        self.ynab = ynab
        self.normalizer = normalizer or TransactionNormalizer(settings.masked_card_tokens)

    async def run(self) -> Dict[str, Any]:
        """
        Sync transactions from Sbanken to YNAB.

        Main workflow:
        1. Authenticate against Sbanken
        2. Fetch one page of recent transactions
        3. Normalize each transaction
        4. Resolve YNAB budget and account by name
        5. Transfer every eligible transaction not already transferred

        Any failure aborts the run and propagates. Transactions transferred
        before the failure stay recorded; the rest are retried next run.

        Returns:
            {
                'status': 'success',
                'transactions_fetched': int,
                'transferred': int,
                'already_transferred': int,
                'ineligible': int
            }

        Example:
            >>> result = await service.run()
            >>> print(f"Transferred {result['transferred']} new transactions")
        """
        started_at = datetime.now()

        token = await self.provider.authenticate()
        access_token = token.access_token

        accounts = await self.provider.fetch_accounts(access_token)
        for account in accounts:
            logger.info(f"Sbanken account: {account.name} ({account.account_number or account.account_id})")

        raw_transactions = await self.provider.fetch_transactions(
            access_token=access_token,
            account_id=self.settings.sbanken_account_id,
            length=self.settings.sbanken_transaction_page_length
        )

        transactions = [self.normalizer.normalize(raw_tx) for raw_tx in raw_transactions]
        for tx in transactions:
            logger.debug(f"Text: {tx.text} OriginalText: {tx.original_text} Amount: {format_amount(tx.amount)}")

        budget = await self.ynab.resolve_budget(self.settings.ynab_budget_name)
        account = await self.ynab.resolve_account(budget.id, self.settings.ynab_account_name)
        logger.info(f"Transferring to budget '{budget.name}', account '{account.name}'")

        result = await self.transfer_transactions(transactions, budget.id, account.id)

        duration = (datetime.now() - started_at).total_seconds()
        logger.info(
            f"Sync complete in {duration:.1f}s: transferred={result['transferred']}, "
            f"already_transferred={result['already_transferred']}, ineligible={result['ineligible']}"
        )

        return {
            'status': 'success',
            'transactions_fetched': len(raw_transactions),
            **result
        }

    async def transfer_transactions(
        self,
        transactions: Sequence[NormalizedTransaction],
        budget_id: str,
        account_id: str
    ) -> Dict[str, int]:
        """
        Transfer transactions to YNAB, one at a time, in the given order.

        A transaction is recorded in the dedup store only after YNAB confirmed
        creation. A failed create propagates immediately, so the failing
        transaction and everything after it stay unrecorded.

        Args:
            transactions: Normalized transactions, newest first
            budget_id: YNAB budget ID
            account_id: YNAB account ID

        Returns:
            Counts of transferred, already transferred and ineligible transactions
        """
        transferred = 0
        already_transferred = 0
        ineligible = 0

        for tx in transactions:
            if not tx.eligible:
                ineligible += 1
                logger.debug(f"Transaction not eligible for transfer: {_describe(tx)}")
                continue

            identity = tx.identity.key

            if self.deduplicator.exists(identity):
                already_transferred += 1
                logger.info(f"Transaction already transferred: {_describe(tx)}")
                continue

            milliunits = to_milliunits(tx.amount)
            save_transaction = build_save_transaction(tx, account_id, milliunits)

            created = await self.ynab.create_transaction(budget_id, save_transaction)

            self.deduplicator.record(
                identity,
                tx,
                milliunits=milliunits,
                budget_transaction_id=created.id if created else None
            )
            transferred += 1
            logger.info(f"Transaction transferred: {_describe(tx)}")

        return {
            'transferred': transferred,
            'already_transferred': already_transferred,
            'ineligible': ineligible
        }
