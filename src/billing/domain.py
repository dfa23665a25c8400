"""Billing bounded context — Wallet accounts.

Holds the wallet ledger: an append-only list of credit and debit
transactions per user, with a cached balance that always equals the
replayed balance of its succeeded transactions.
"""

from protean.domain import Domain

from shared.logging import configure_logging

configure_logging()

billing = Domain(name="billing")
