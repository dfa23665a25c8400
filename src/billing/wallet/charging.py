"""Wallet top-ups — commands and handler.

A user tops up their own wallet with ``ChargeWallet``; back-office staff use
``AdminChargeWallet`` to record a charge that is linked to an invoice and a
payment transaction. Both open the wallet on first use and are idempotent on
a caller-supplied reference: retrying with the same reference returns the
transaction already recorded instead of crediting twice.
"""

import structlog
from protean import handle
from protean.fields import DateTime, Float, Identifier, String
from protean.utils.globals import current_domain

from billing.domain import billing
from billing.exceptions import CurrencyMismatch
from billing.wallet.references import generate_reference
from billing.wallet.summary import summarize_transaction
from billing.wallet.wallet import (
    TransactionStatus,
    WalletAccount,
    normalize_currency,
    normalize_owner,
    positive_amount,
)
from shared import settings
from shared.audit import AuditStamp

logger = structlog.get_logger(__name__)


@billing.command(part_of="WalletAccount")
class ChargeWallet:
    """Credit a user's wallet with a successful deposit."""

    user_id = String(required=True, max_length=255)
    amount = Float(required=True)
    currency = String(max_length=10)
    description = String(max_length=500)
    reference = String(max_length=100)
    actor_id = String(max_length=255)
    ip_address = String(max_length=64)


@billing.command(part_of="WalletAccount")
class AdminChargeWallet:
    """Back-office wallet charge linked to an invoice and its payment transaction."""

    user_id = String(required=True, max_length=255)
    amount = Float(required=True)
    currency = String(max_length=10)
    description = String(max_length=500)
    reference = String(max_length=100)
    invoice_id = Identifier()
    payment_transaction_id = Identifier()
    occurred_at = DateTime()
    actor_id = String(max_length=255)
    ip_address = String(max_length=64)


def _credit(command, stamp, prefix, occurred_at, invoice_id=None, payment_transaction_id=None):
    owner = normalize_owner(command.user_id)
    amount = positive_amount(command.amount)
    currency = normalize_currency(command.currency or settings.DEFAULT_CURRENCY)

    repo = current_domain.repository_for(WalletAccount)
    wallet = repo.get_by_user_id(owner)
    if wallet is None:
        wallet = WalletAccount.open(owner, currency, stamp)
    elif wallet.currency != currency:
        raise CurrencyMismatch({"currency": [f"Wallet holds {wallet.currency}, not {currency}"]})

    existing = wallet.transaction_for_reference(command.reference)
    if existing is not None:
        logger.info("wallet.credit_replayed", wallet_id=str(wallet.id), reference=existing.reference)
        return summarize_transaction(wallet, existing)

    transaction = wallet.credit(
        amount,
        command.reference or generate_reference(prefix, stamp.at),
        description=command.description,
        invoice_id=invoice_id,
        payment_transaction_id=payment_transaction_id,
        status=TransactionStatus.SUCCEEDED,
        occurred_at=occurred_at,
        stamp=stamp,
    )
    repo.add(wallet)

    logger.info(
        "wallet.credited",
        wallet_id=str(wallet.id),
        user_id=owner,
        reference=transaction.reference,
        amount=transaction.amount,
        balance=wallet.balance,
    )
    return summarize_transaction(wallet, transaction)


@billing.command_handler(part_of=WalletAccount)
class ChargeWalletHandler:
    @handle(ChargeWallet)
    def charge_wallet(self, command):
        stamp = AuditStamp.capture(actor_id=command.actor_id or command.user_id, ip_address=command.ip_address)
        return _credit(command, stamp, settings.WALLET_DEPOSIT_PREFIX, occurred_at=stamp.at)

    @handle(AdminChargeWallet)
    def admin_charge_wallet(self, command):
        stamp = AuditStamp.capture(actor_id=command.actor_id, ip_address=command.ip_address)
        return _credit(
            command,
            stamp,
            settings.WALLET_ADMIN_PREFIX,
            occurred_at=command.occurred_at or stamp.at,
            invoice_id=command.invoice_id,
            payment_transaction_id=command.payment_transaction_id,
        )
