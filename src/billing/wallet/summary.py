"""Plain results returned by the wallet command handlers."""

from billing.wallet.wallet import WalletAccount, WalletTransaction
from shared.money import to_money


def summarize_transaction(wallet: WalletAccount, transaction: WalletTransaction) -> dict:
    return {
        "wallet_id": str(wallet.id),
        "user_id": wallet.user_id,
        "currency": wallet.currency,
        "transaction_id": str(transaction.id),
        "sequence": transaction.sequence,
        "reference": transaction.reference,
        "transaction_type": transaction.transaction_type,
        "status": transaction.status,
        "amount": str(to_money(transaction.amount)),
        "balance_after_transaction": str(to_money(transaction.balance_after_transaction)),
        "balance": str(to_money(wallet.balance)),
        "invoice_id": str(transaction.invoice_id) if transaction.invoice_id else None,
        "payment_transaction_id": (
            str(transaction.payment_transaction_id) if transaction.payment_transaction_id else None
        ),
        "occurred_at": transaction.occurred_at.isoformat(),
    }


def summarize_wallet(wallet: WalletAccount) -> dict:
    return {
        "wallet_id": str(wallet.id),
        "user_id": wallet.user_id,
        "currency": wallet.currency,
        "balance": str(to_money(wallet.balance)),
        "is_locked": bool(wallet.is_locked),
        "transaction_count": len(wallet.transactions),
    }
