"""Domain events for the WalletAccount aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from billing.domain import billing


@billing.event(part_of="WalletAccount")
class WalletOpened:
    """A wallet was opened for a user."""

    __version__ = 1

    wallet_id = Identifier(required=True)
    user_id = String(required=True)
    currency = String(required=True)
    opened_at = DateTime(required=True)


@billing.event(part_of="WalletAccount")
class WalletCredited:
    """A credit transaction was appended. Only a succeeded credit moves the balance."""

    __version__ = 1

    wallet_id = Identifier(required=True)
    transaction_id = Identifier(required=True)
    sequence = Integer(required=True)
    reference = String(required=True)
    amount = Float(required=True)
    status = String(required=True)
    balance_after_transaction = Float(required=True)
    balance = Float(required=True)
    invoice_id = Identifier()
    payment_transaction_id = Identifier()
    occurred_at = DateTime(required=True)


@billing.event(part_of="WalletAccount")
class WalletDebited:
    """A debit transaction was appended. Only a succeeded debit moves the balance."""

    __version__ = 1

    wallet_id = Identifier(required=True)
    transaction_id = Identifier(required=True)
    sequence = Integer(required=True)
    reference = String(required=True)
    amount = Float(required=True)
    status = String(required=True)
    balance_after_transaction = Float(required=True)
    balance = Float(required=True)
    invoice_id = Identifier()
    payment_transaction_id = Identifier()
    occurred_at = DateTime(required=True)


@billing.event(part_of="WalletAccount")
class WalletAccountLocked:
    __version__ = 1

    wallet_id = Identifier(required=True)
    locked_at = DateTime(required=True)


@billing.event(part_of="WalletAccount")
class WalletAccountUnlocked:
    __version__ = 1

    wallet_id = Identifier(required=True)
    unlocked_at = DateTime(required=True)
