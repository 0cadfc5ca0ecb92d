from sqlalchemy import Column, Integer, BigInteger, String, DateTime, Text, Enum as SQLEnum
from sqlalchemy.sql import func
import enum
from sbanken_ynab.database import Base


class IdentityScheme(str, enum.Enum):
    HASH_DERIVED = "HASH_DERIVED"
    PROVIDER_SUPPLIED = "PROVIDER_SUPPLIED"


class TransferRecord(Base):
    __tablename__ = "transfer_records"

    id = Column(Integer, primary_key=True, index=True)

    # Deduplication key, see normalization.derive_identity
    identity = Column(String(255), unique=True, index=True, nullable=False)
    identity_scheme = Column(SQLEnum(IdentityScheme), nullable=False)
    provider_transaction_id = Column(String(255), nullable=True)

    # Transaction data as fetched
    accounting_date = Column(DateTime, nullable=False)
    # Exact decimal text, as used in the identity hash
    amount = Column(String(64), nullable=False)
    original_text = Column(Text, nullable=True)
    text = Column(Text, nullable=True)

    # What was sent to YNAB
    milliunits = Column(BigInteger, nullable=False)
    budget_transaction_id = Column(String(255), nullable=True)

    transferred_at = Column(DateTime(timezone=True), server_default=func.now())
