"""Shared BDD fixtures and step definitions for the Billing domain."""

import pytest
from billing.wallet.wallet import WalletAccount
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then, when


@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('an open {currency} wallet for user "{user_id}"'), target_fixture="wallet")
def open_wallet(currency, user_id):
    wallet = WalletAccount.open(user_id, currency)
    wallet._events.clear()
    return wallet


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('{amount:f} is credited with reference "{reference}"'))
def credit(wallet, error, amount, reference):
    error["exc"] = None
    try:
        wallet.credit(amount, reference)
    except ValidationError as exc:
        error["exc"] = exc


@when(parsers.cfparse('{amount:f} is debited with reference "{reference}"'))
def debit(wallet, error, amount, reference):
    error["exc"] = None
    try:
        wallet.debit(amount, reference)
    except ValidationError as exc:
        error["exc"] = exc


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the balance is {amount:f}"))
def balance_is(wallet, amount):
    assert wallet.balance == pytest.approx(amount)


@then(parsers.cfparse("the wallet holds {count:d} transaction"))
@then(parsers.cfparse("the wallet holds {count:d} transactions"))
def transaction_count(wallet, count):
    assert len(wallet.transactions) == count


@then(parsers.cfparse("the action fails with {error_name}"))
def action_fails(error, error_name):
    assert error["exc"] is not None
    assert type(error["exc"]).__name__ == error_name


@then("the action succeeds")
def action_succeeds(error):
    assert error["exc"] is None
