from pydantic import BaseModel, model_validator
from pydantic.alias_generators import to_camel
from typing import Any, List, Optional
from datetime import date, datetime
from decimal import Decimal

from .models import IdentityScheme


# Sbanken schemas

class SbankenModel(BaseModel):
    """Accepts both camelCase and PascalCase keys as returned by the Sbanken API versions."""

    @model_validator(mode="before")
    @classmethod
    def _lower_first_letter(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {
                (key[:1].lower() + key[1:]) if isinstance(key, str) else key: value
                for key, value in data.items()
            }
        return data

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class DiscoveryDocument(BaseModel):
    issuer: Optional[str] = None
    token_endpoint: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    expires_in: Optional[int] = None


class Account(SbankenModel):
    account_id: str
    account_number: Optional[str] = None
    name: Optional[str] = None
    account_type: Optional[str] = None
    available: Optional[Decimal] = None
    balance: Optional[Decimal] = None


class AccountList(SbankenModel):
    available_items: Optional[int] = None
    items: List[Account] = []


class RawTransaction(SbankenModel):
    transaction_id: Optional[str] = None  # Only supplied by the v2 API
    accounting_date: datetime
    amount: Decimal
    text: str = ""
    is_reservation: bool = False  # Only supplied by the v1 API

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        frozen = True


class TransactionList(SbankenModel):
    available_items: Optional[int] = None
    items: List[RawTransaction] = []


class TransactionIdentity(BaseModel):
    scheme: IdentityScheme
    key: str

    class Config:
        frozen = True


class NormalizedTransaction(BaseModel):
    raw: RawTransaction
    text: str
    identity: TransactionIdentity
    eligible: bool

    class Config:
        frozen = True

    @property
    def accounting_date(self) -> datetime:
        return self.raw.accounting_date

    @property
    def amount(self) -> Decimal:
        return self.raw.amount

    @property
    def original_text(self) -> str:
        return self.raw.text

    @property
    def provider_transaction_id(self) -> Optional[str]:
        return self.raw.transaction_id


# YNAB schemas

class Budget(BaseModel):
    id: str
    name: str


class YNABAccount(BaseModel):
    id: str
    name: str
    closed: bool = False
    deleted: bool = False


class SaveTransaction(BaseModel):
    account_id: str
    date: date
    amount: int  # milliunits
    payee_name: Optional[str] = None
    cleared: str = "uncleared"
    flag_color: Optional[str] = None
    import_id: Optional[str] = None
    memo: Optional[str] = None


class SavedTransaction(BaseModel):
    id: str
    date: date
    amount: int
    import_id: Optional[str] = None
