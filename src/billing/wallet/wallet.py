"""Wallet Account aggregate — an append-only ledger with a cached balance.

Every credit and debit appends an immutable ``WalletTransaction`` that records
the balance the account would reach, whatever the transaction's status. Only
succeeded transactions move the cached ``balance``, so the balance can always
be rebuilt by replaying succeeded transactions in ``(occurred_at, sequence)``
order. Nothing edits or removes a recorded transaction; a correction is a new,
offsetting transaction.

Timestamps for ledger entries are supplied by the caller (``occurred_at``);
the wall clock is only read when none is given. A timestamp without an
offset is read as UTC, so every ledger entry is stored as aware UTC.
"""

import dataclasses
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, Text, ValueObject

from billing.audit import AuditTrail
from billing.domain import billing
from billing.exceptions import (
    InsufficientBalance,
    InvalidAmount,
    InvalidCurrency,
    InvalidReference,
    InvalidWalletOwner,
    WalletError,
    WalletLocked,
)
from billing.wallet.events import (
    WalletAccountLocked,
    WalletAccountUnlocked,
    WalletCredited,
    WalletDebited,
    WalletOpened,
)
from shared.audit import AuditStamp, as_utc
from shared.money import ZERO, round_money, to_money


class TransactionType(Enum):
    CREDIT = "Credit"
    DEBIT = "Debit"


class TransactionStatus(Enum):
    PENDING = "Pending"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    CANCELLED = "Cancelled"


def _optional_text(value):
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize_owner(user_id) -> str:
    owner = _optional_text(user_id)
    if owner is None:
        raise InvalidWalletOwner({"user_id": ["A wallet requires a user identifier"]})
    return owner


def normalize_currency(currency) -> str:
    code = _optional_text(currency)
    if code is None:
        raise InvalidCurrency({"currency": ["Wallet currency is required"]})
    return code.upper()


def normalize_reference(reference) -> str:
    normalized = _optional_text(reference)
    if normalized is None:
        raise InvalidReference({"reference": ["Transaction reference is required"]})
    return normalized


def positive_amount(amount) -> Decimal:
    try:
        value = round_money(amount)
    except ValueError as exc:
        raise InvalidAmount({"amount": ["Amount must be a number"]}) from exc
    if value <= 0:
        raise InvalidAmount({"amount": ["Amount must be greater than zero"]})
    return value


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@billing.entity(part_of="WalletAccount")
class WalletTransaction:
    """One immutable ledger entry.

    ``sequence`` is the append order within the wallet and breaks ties
    between entries that share an ``occurred_at``.
    """

    sequence = Integer(required=True, min_value=1)
    amount = Float(required=True, min_value=0.01)
    transaction_type = String(required=True, max_length=10, choices=TransactionType)
    status = String(required=True, max_length=20, choices=TransactionStatus)
    balance_after_transaction = Float(required=True)
    reference = String(required=True, max_length=100)
    description = String(max_length=500)
    transaction_metadata = Text()
    invoice_id = Identifier()
    payment_transaction_id = Identifier()
    occurred_at = DateTime(required=True)

    @property
    def is_succeeded(self) -> bool:
        return self.status == TransactionStatus.SUCCEEDED.value

    @property
    def signed_amount(self) -> Decimal:
        amount = to_money(self.amount)
        return amount if self.transaction_type == TransactionType.CREDIT.value else -amount


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@billing.aggregate
class WalletAccount:
    user_id = String(required=True, max_length=255, unique=True)
    currency = String(required=True, max_length=10)
    balance = Float(default=0.0)
    is_locked = Boolean(default=False)
    last_activity_on = DateTime()
    transactions = HasMany(WalletTransaction)
    audit = ValueObject(AuditTrail)

    @invariant.post
    def balance_cannot_be_negative(self):
        if to_money(self.balance) < 0:
            raise ValidationError({"balance": ["Wallet balance cannot be negative"]})

    @classmethod
    def open(cls, user_id, currency, stamp: AuditStamp | None = None):
        owner = normalize_owner(user_id)
        code = normalize_currency(currency)
        stamp = stamp or AuditStamp.capture()

        wallet = cls(
            user_id=owner,
            currency=code,
            balance=0.0,
            is_locked=False,
            last_activity_on=stamp.at,
            audit=AuditTrail.opened(stamp),
        )
        wallet.raise_(
            WalletOpened(
                wallet_id=str(wallet.id),
                user_id=owner,
                currency=code,
                opened_at=stamp.at,
            )
        )
        return wallet

    # -------------------------------------------------------------------
    # Ledger
    # -------------------------------------------------------------------
    def credit(
        self,
        amount,
        reference,
        description=None,
        metadata=None,
        invoice_id=None,
        payment_transaction_id=None,
        status=TransactionStatus.SUCCEEDED,
        occurred_at=None,
        stamp: AuditStamp | None = None,
    ) -> WalletTransaction:
        return self._record(
            TransactionType.CREDIT,
            amount,
            reference,
            description,
            metadata,
            invoice_id,
            payment_transaction_id,
            status,
            occurred_at,
            stamp,
        )

    def debit(
        self,
        amount,
        reference,
        description=None,
        metadata=None,
        invoice_id=None,
        payment_transaction_id=None,
        status=TransactionStatus.SUCCEEDED,
        occurred_at=None,
        stamp: AuditStamp | None = None,
    ) -> WalletTransaction:
        return self._record(
            TransactionType.DEBIT,
            amount,
            reference,
            description,
            metadata,
            invoice_id,
            payment_transaction_id,
            status,
            occurred_at,
            stamp,
        )

    def _record(
        self,
        transaction_type,
        amount,
        reference,
        description,
        metadata,
        invoice_id,
        payment_transaction_id,
        status,
        occurred_at,
        stamp,
    ):
        if self.is_locked:
            raise WalletLocked({"wallet": ["Wallet is locked"]})

        value = positive_amount(amount)
        normalized_reference = normalize_reference(reference)
        try:
            status = TransactionStatus(status)
        except ValueError as exc:
            raise WalletError({"status": [f"Unsupported transaction status: {status}"]}) from exc

        current = to_money(self.balance)
        prospective = current + value if transaction_type == TransactionType.CREDIT else current - value
        if transaction_type == TransactionType.DEBIT and status == TransactionStatus.SUCCEEDED and prospective < 0:
            raise InsufficientBalance({"amount": ["Wallet balance is not sufficient for this transaction"]})
        prospective = round_money(prospective)

        occurred_at = as_utc(occurred_at) or datetime.now(UTC)
        stamp = dataclasses.replace(stamp, at=occurred_at) if stamp else AuditStamp.capture(at=occurred_at)

        transaction = WalletTransaction(
            sequence=self._next_sequence(),
            amount=float(value),
            transaction_type=transaction_type.value,
            status=status.value,
            balance_after_transaction=float(prospective),
            reference=normalized_reference,
            description=_optional_text(description),
            transaction_metadata=_optional_text(metadata),
            invoice_id=invoice_id,
            payment_transaction_id=payment_transaction_id,
            occurred_at=occurred_at,
        )

        with atomic_change(self):
            self.add_transactions(transaction)
            if status == TransactionStatus.SUCCEEDED:
                self.balance = float(prospective)
            self.last_activity_on = occurred_at
            self._touch(stamp)

        event_cls = WalletCredited if transaction_type == TransactionType.CREDIT else WalletDebited
        self.raise_(
            event_cls(
                wallet_id=str(self.id),
                transaction_id=str(transaction.id),
                sequence=transaction.sequence,
                reference=normalized_reference,
                amount=transaction.amount,
                status=status.value,
                balance_after_transaction=transaction.balance_after_transaction,
                balance=self.balance,
                invoice_id=invoice_id,
                payment_transaction_id=payment_transaction_id,
                occurred_at=occurred_at,
            )
        )
        return transaction

    def _next_sequence(self) -> int:
        return max((t.sequence for t in self.transactions), default=0) + 1

    # -------------------------------------------------------------------
    # Locking
    # -------------------------------------------------------------------
    def lock(self, stamp: AuditStamp | None = None) -> None:
        if self.is_locked:
            return

        stamp = stamp or AuditStamp.capture()
        with atomic_change(self):
            self.is_locked = True
            self._touch(stamp)

        self.raise_(WalletAccountLocked(wallet_id=str(self.id), locked_at=stamp.at))

    def unlock(self, stamp: AuditStamp | None = None) -> None:
        if not self.is_locked:
            return

        stamp = stamp or AuditStamp.capture()
        with atomic_change(self):
            self.is_locked = False
            self._touch(stamp)

        self.raise_(WalletAccountUnlocked(wallet_id=str(self.id), unlocked_at=stamp.at))

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def transaction_for_reference(self, reference):
        """The most recent transaction recorded under ``reference``, if any."""
        normalized = _optional_text(reference)
        if normalized is None:
            return None
        matches = [t for t in self.transactions if t.reference == normalized]
        return max(matches, key=lambda t: t.sequence) if matches else None

    def succeeded_transactions(self):
        """Succeeded transactions in replay order."""
        return sorted(
            (t for t in self.transactions if t.is_succeeded),
            key=lambda t: (t.occurred_at, t.sequence),
        )

    def last_succeeded_transaction(self):
        succeeded = [t for t in self.transactions if t.is_succeeded]
        return max(succeeded, key=lambda t: t.sequence) if succeeded else None

    def replayed_balance(self) -> Decimal:
        return round_money(sum((t.signed_amount for t in self.succeeded_transactions()), ZERO))

    def _touch(self, stamp: AuditStamp) -> None:
        self.audit = self.audit.touched(stamp) if self.audit else AuditTrail.opened(stamp)
