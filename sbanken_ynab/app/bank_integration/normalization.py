"""
Transaction Normalization Module

Turns raw Sbanken transactions into the view the sync engine works with:
1. Identity (provider transaction ID, or a SHA-256 hash for the v1 API)
2. Cleaned display text used as YNAB payee name
3. Eligibility (reservations and internal transfers are never transferred)
"""

import hashlib
import re
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from sbanken_ynab.app.models import IdentityScheme
from sbanken_ynab.app.schemas import NormalizedTransaction, RawTransaction, TransactionIdentity


DEFAULT_MASKED_CARD_TOKENS = ("*7424", "*4137")
CURRENCY_CODES = ("NOK", "SEK")
# Betalt/Til/Fra/Kurs = Paid/To/From/Rate
BOILERPLATE_TOKENS = ("Betalt:", "Til:", "Fra:", "Kurs:")
EXCHANGE_RATE_PLACEHOLDER = "1.0000"

# Cleaned texts of Sbanken's own transfer labels
INTERNAL_TRANSFER_TEXTS = frozenset({
    "Nettbank",
    "Overførsel",
    "Nettgiro",
    "Straksoverføring",
    "Overført Til Annen Konto",
    "Efaktura Avtalegiro",
})

# dd.mm.yy (any separator)
DATE_DDMMYY_PATTERN = re.compile(r"(([0-9]{2}).([0-9]{2}).([0-9]{2}))")
# dd.mm with valid day and month
DATE_DDMM_PATTERN = re.compile(r"((0[1-9]|[12]\d|3[01]).(0[1-9]|1[0-2]))")
MULTIPLE_SPACES_PATTERN = re.compile(r"[ ]{2,}")
# Runs of letters; an apostrophe inside a word does not start a new one
WORD_PATTERN = re.compile(r"[^\W\d_]+(?:'[^\W\d_]+)*")


def format_round_trip(value: datetime) -> str:
    """
    Format a datetime as round-trip ISO-8601 with seven fractional digits.

    Example:
        >>> format_round_trip(datetime(2023, 1, 2, 0, 0))
        '2023-01-02T00:00:00.0000000'
    """
    text = f"{value.strftime('%Y-%m-%dT%H:%M:%S')}.{value.microsecond:06d}0"

    offset = value.utcoffset()
    if offset is None:
        return text
    if offset == timedelta(0):
        return f"{text}Z"

    sign = "-" if offset < timedelta(0) else "+"
    minutes = abs(int(offset.total_seconds())) // 60
    return f"{text}{sign}{minutes // 60:02d}:{minutes % 60:02d}"


def format_amount(amount: Decimal) -> str:
    """Shortest plain decimal representation: 12.34, -500, 10."""
    if amount == amount.to_integral_value():
        return format(amount.quantize(Decimal(1)), "f")
    return format(amount.normalize(), "f")


def format_absolute_amount(amount: Decimal) -> str:
    """Absolute amount with exactly two decimals and a period separator."""
    return format(abs(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP), "f")


def title_case(text: str) -> str:
    """Lowercase the text, then capitalize the first letter of every run of letters: "7-ELEVEN" -> "7-Eleven"."""
    return WORD_PATTERN.sub(lambda match: match.group(0)[:1].upper() + match.group(0)[1:], text.lower())


class TransactionNormalizer:
    """
    Derive identity, display text and eligibility for raw transactions.

    The identity scheme is resolved once per transaction: PROVIDER_SUPPLIED
    when Sbanken returns a transaction ID (v2 archive API), HASH_DERIVED
    otherwise (v1 API).
    """

    def __init__(self, masked_card_tokens: Optional[Iterable[str]] = None):
        """
        Args:
            masked_card_tokens: Card number fragments to strip from texts,
                e.g. "*7424". Defaults to DEFAULT_MASKED_CARD_TOKENS.
        """
        if masked_card_tokens is None:
            masked_card_tokens = DEFAULT_MASKED_CARD_TOKENS
        self.masked_card_tokens = tuple(masked_card_tokens)

    @staticmethod
    def generate_hash(accounting_date: datetime, original_text: str, amount: Decimal) -> str:
        """
        Generate identity hash for transactions without a provider ID.

        Two different transactions with the same accounting date, text and
        amount produce the same hash, so the second one is never transferred.

        Args:
            accounting_date: Accounting date as fetched
            original_text: Raw transaction text (before cleaning)
            amount: Signed amount

        Returns:
            64-character uppercase hex SHA-256 hash

        Example:
            >>> TransactionNormalizer.generate_hash(
            ...     datetime(2023, 1, 2), "Kiwi 123", Decimal("-49.90")
            ... )
            >>> # Same input always produces the same hash
        """
        hash_input = f"{format_round_trip(accounting_date)}-{original_text}-{format_amount(amount)}"
        return hashlib.sha256(hash_input.encode("utf-8")).hexdigest().upper()

    @staticmethod
    def derive_identity(transaction: RawTransaction) -> TransactionIdentity:
        if transaction.transaction_id:
            return TransactionIdentity(
                scheme=IdentityScheme.PROVIDER_SUPPLIED,
                key=transaction.transaction_id
            )

        return TransactionIdentity(
            scheme=IdentityScheme.HASH_DERIVED,
            key=TransactionNormalizer.generate_hash(
                transaction.accounting_date,
                transaction.text,
                transaction.amount
            )
        )

    def clean_text(self, text: str, amount: Decimal) -> str:
        """
        Strip card numbers, currency codes, boilerplate, amount and dates from a transaction text.

        Args:
            text: Raw transaction text
            amount: Signed transaction amount; its absolute value is removed from the text

        Returns:
            Title-cased text with single spaces

        Example:
            >>> normalizer.clean_text("NOK Betalt:12.34 Til: John 01.02.23", Decimal("12.34"))
            'John'
        """
        result = text or ""

        for token in self.masked_card_tokens:
            result = result.replace(token, "")
        for token in CURRENCY_CODES:
            result = result.replace(token, "")
        for token in BOILERPLATE_TOKENS:
            result = result.replace(token, "")

        result = result.replace(format_absolute_amount(amount), "")
        result = result.replace(EXCHANGE_RATE_PLACEHOLDER, "")

        # Only the first date of each pattern is removed
        result = DATE_DDMMYY_PATTERN.sub("", result, count=1)
        result = DATE_DDMM_PATTERN.sub("", result, count=1)

        result = MULTIPLE_SPACES_PATTERN.sub(" ", result)
        result = title_case(result)

        return result.strip()

    @staticmethod
    def is_eligible(transaction: RawTransaction, cleaned_text: str) -> bool:
        # The v2 archive endpoint excludes reservations already
        if transaction.transaction_id:
            return True
        if transaction.is_reservation:
            return False
        return cleaned_text not in INTERNAL_TRANSFER_TEXTS

    def normalize(self, transaction: RawTransaction) -> NormalizedTransaction:
        text = self.clean_text(transaction.text, transaction.amount)

        return NormalizedTransaction(
            raw=transaction,
            text=text,
            identity=self.derive_identity(transaction),
            eligible=self.is_eligible(transaction, text)
        )
