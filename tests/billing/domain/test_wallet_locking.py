"""Tests for locking a WalletAccount."""

import pytest
from billing.exceptions import WalletLocked
from billing.wallet.wallet import TransactionStatus, WalletAccount


@pytest.fixture()
def wallet():
    wallet = WalletAccount.open("user-001", "USD")
    wallet.credit(100, "ref1")
    return wallet


class TestWalletLocking:
    def test_locked_wallet_rejects_credit(self, wallet):
        wallet.lock()

        with pytest.raises(WalletLocked):
            wallet.credit(50, "ref3")

        assert wallet.balance == 100.0
        assert len(wallet.transactions) == 1

    def test_locked_wallet_rejects_debit(self, wallet):
        wallet.lock()
        with pytest.raises(WalletLocked):
            wallet.debit(10, "ref2")

    def test_lock_is_checked_before_the_amount(self, wallet):
        wallet.lock()
        with pytest.raises(WalletLocked):
            wallet.credit(-1, "")

    def test_locked_wallet_rejects_pending_transactions(self, wallet):
        wallet.lock()
        with pytest.raises(WalletLocked):
            wallet.credit(10, "ref2", status=TransactionStatus.PENDING)

    def test_unlock_restores_ledger_operations(self, wallet):
        wallet.lock()
        wallet.unlock()

        wallet.credit(50, "ref3")

        assert wallet.balance == 150.0

    def test_lock_and_unlock_are_idempotent(self, wallet):
        wallet._events.clear()

        wallet.lock()
        wallet.lock()
        assert wallet.is_locked is True
        assert len(wallet._events) == 1

        wallet.unlock()
        wallet.unlock()
        assert wallet.is_locked is False
        assert len(wallet._events) == 2
