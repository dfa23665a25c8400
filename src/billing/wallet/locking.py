"""Wallet locking — commands and handler."""

import structlog
from protean import handle
from protean.fields import String
from protean.utils.globals import current_domain

from billing.domain import billing
from billing.exceptions import WalletNotFound
from billing.wallet.summary import summarize_wallet
from billing.wallet.wallet import WalletAccount, normalize_owner
from shared.audit import AuditStamp

logger = structlog.get_logger(__name__)


@billing.command(part_of="WalletAccount")
class LockWallet:
    """Block credits and debits on a user's wallet."""

    user_id = String(required=True, max_length=255)
    actor_id = String(max_length=255)
    ip_address = String(max_length=64)


@billing.command(part_of="WalletAccount")
class UnlockWallet:
    user_id = String(required=True, max_length=255)
    actor_id = String(max_length=255)
    ip_address = String(max_length=64)


def _load_wallet(command):
    owner = normalize_owner(command.user_id)
    wallet = current_domain.repository_for(WalletAccount).get_by_user_id(owner)
    if wallet is None:
        raise WalletNotFound({"user_id": ["No wallet was found for this user"]})
    return wallet


@billing.command_handler(part_of=WalletAccount)
class WalletLockingHandler:
    @handle(LockWallet)
    def lock_wallet(self, command):
        wallet = _load_wallet(command)
        if not wallet.is_locked:
            wallet.lock(AuditStamp.capture(actor_id=command.actor_id, ip_address=command.ip_address))
            current_domain.repository_for(WalletAccount).add(wallet)
            logger.info("wallet.locked", wallet_id=str(wallet.id), user_id=wallet.user_id)
        return summarize_wallet(wallet)

    @handle(UnlockWallet)
    def unlock_wallet(self, command):
        wallet = _load_wallet(command)
        if wallet.is_locked:
            wallet.unlock(AuditStamp.capture(actor_id=command.actor_id, ip_address=command.ip_address))
            current_domain.repository_for(WalletAccount).add(wallet)
            logger.info("wallet.unlocked", wallet_id=str(wallet.id), user_id=wallet.user_id)
        return summarize_wallet(wallet)
