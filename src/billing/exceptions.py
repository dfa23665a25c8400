"""Domain failures raised by the wallet aggregate and its handlers.

Like the ordering failures these are ``ValidationError`` subclasses with a
``{field: [message]}`` payload.
"""

from protean.exceptions import ValidationError


class WalletError(ValidationError):
    """Base class for wallet failures."""


class WalletLocked(WalletError):
    """Credit or debit attempted while the wallet is locked."""


class InvalidAmount(WalletError):
    """Amount is not a positive monetary value."""


class InsufficientBalance(WalletError):
    """A succeeded debit would leave the balance negative."""


class InvalidReference(WalletError):
    """Blank transaction reference."""


class InvalidWalletOwner(WalletError):
    """Blank user identifier for a wallet."""


class InvalidCurrency(WalletError):
    """Blank or malformed currency code."""


class CurrencyMismatch(WalletError):
    """Requested currency differs from the wallet's currency."""


class WalletNotFound(WalletError):
    """No wallet exists for the user."""
