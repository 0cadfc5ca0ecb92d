"""
Transaction Deduplication Module

Keeps track of which transactions have been transferred to YNAB.
A transaction identity is recorded only after YNAB has confirmed the
transaction was created, so the store is the source of truth for
"already transferred" across runs.
"""

from typing import Optional
from sqlalchemy.orm import Session

from sbanken_ynab.app.models import TransferRecord
from sbanken_ynab.app.schemas import NormalizedTransaction

from .normalization import format_amount


class TransactionDeduplicator:
    """
    Persisted set of transferred transaction identities.

    Backed by the transfer_records table, indexed on identity.
    Single writer: only the running sync job touches the store.
    """

    def __init__(self, db: Session):
        """
        Initialize deduplicator with database session.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def exists(self, identity: str) -> bool:
        """
        Check if a transaction with this identity was already transferred.

        Args:
            identity: Identity key from TransactionNormalizer

        Returns:
            True if a TransferRecord exists for the identity
        """
        return self.db.query(TransferRecord.id).filter(
            TransferRecord.identity == identity
        ).first() is not None

    def record(
        self,
        identity: str,
        transaction: NormalizedTransaction,
        milliunits: int = 0,
        budget_transaction_id: Optional[str] = None
    ) -> TransferRecord:
        """
        Record a transaction as transferred.

        Must only be called after YNAB confirmed creation. Commits
        immediately so the record survives a crash later in the run.

        Args:
            identity: Identity key from TransactionNormalizer
            transaction: The transferred transaction
            milliunits: Amount sent to YNAB
            budget_transaction_id: Transaction ID returned by YNAB, if any

        Returns:
            Created TransferRecord

        Example:
            >>> dedup = TransactionDeduplicator(db)
            >>> if not dedup.exists(tx.identity.key):
            ...     # create in YNAB first, then
            ...     dedup.record(tx.identity.key, tx, milliunits=-49900)
        """
        record = TransferRecord(
            identity=identity,
            identity_scheme=transaction.identity.scheme,
            provider_transaction_id=transaction.provider_transaction_id,
            accounting_date=transaction.accounting_date,
            amount=format_amount(transaction.amount),
            original_text=transaction.original_text,
            text=transaction.text,
            milliunits=milliunits,
            budget_transaction_id=budget_transaction_id
        )
        self.db.add(record)
        self.db.commit()
        return record

    def count(self) -> int:
        return self.db.query(TransferRecord).count()
