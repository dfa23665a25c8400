"""Paying an invoice from the wallet — command and handler.

The invoicing system owns the invoice; this handler only receives the
outstanding amount, the invoice currency and its identifiers, and debits
the wallet accordingly.
"""

import structlog
from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from billing.domain import billing
from billing.exceptions import CurrencyMismatch, InsufficientBalance, WalletLocked, WalletNotFound
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
class PayWithWallet:
    """Settle an invoice's outstanding amount from the user's wallet."""

    user_id = String(required=True, max_length=255)
    invoice_id = Identifier(required=True)
    invoice_number = String(max_length=50)
    amount = Float(required=True)  # Outstanding invoice amount
    currency = String(max_length=10)
    reference = String(max_length=100)
    actor_id = String(max_length=255)
    ip_address = String(max_length=64)


@billing.command_handler(part_of=WalletAccount)
class WalletPaymentHandler:
    @handle(PayWithWallet)
    def pay_with_wallet(self, command):
        owner = normalize_owner(command.user_id)
        amount = positive_amount(command.amount)
        currency = normalize_currency(command.currency or settings.DEFAULT_CURRENCY)
        stamp = AuditStamp.capture(actor_id=command.actor_id or owner, ip_address=command.ip_address)

        repo = current_domain.repository_for(WalletAccount)
        wallet = repo.get_by_user_id(owner)
        if wallet is None:
            raise WalletNotFound({"user_id": ["No wallet was found for this user"]})
        if wallet.currency != currency:
            raise CurrencyMismatch({"currency": [f"Invoice is in {currency}, wallet holds {wallet.currency}"]})

        existing = wallet.transaction_for_reference(command.reference)
        if existing is not None:
            logger.info("wallet.debit_replayed", wallet_id=str(wallet.id), reference=existing.reference)
            return summarize_transaction(wallet, existing)

        invoice_label = command.invoice_number or str(command.invoice_id)
        try:
            transaction = wallet.debit(
                amount,
                command.reference or generate_reference(settings.WALLET_INVOICE_PREFIX, stamp.at),
                description=f"Payment of invoice {invoice_label}",
                metadata=command.invoice_number,
                invoice_id=command.invoice_id,
                status=TransactionStatus.SUCCEEDED,
                occurred_at=stamp.at,
                stamp=stamp,
            )
        except (WalletLocked, InsufficientBalance) as exc:
            logger.warning(
                "wallet.debit_rejected",
                wallet_id=str(wallet.id),
                invoice_id=str(command.invoice_id),
                reason=type(exc).__name__,
            )
            raise

        repo.add(wallet)

        logger.info(
            "wallet.debited",
            wallet_id=str(wallet.id),
            invoice_id=str(command.invoice_id),
            reference=transaction.reference,
            amount=transaction.amount,
            balance=wallet.balance,
        )
        return summarize_transaction(wallet, transaction)
