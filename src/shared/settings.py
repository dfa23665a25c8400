"""Environment-driven settings shared by the ordering and billing contexts."""

import os

DEFAULT_CURRENCY = os.getenv("STOREFRONT_DEFAULT_CURRENCY", "USD").strip().upper()

# Prefixes for generated wallet transaction references
WALLET_DEPOSIT_PREFIX = os.getenv("STOREFRONT_WALLET_DEPOSIT_PREFIX", "WLDEP")
WALLET_INVOICE_PREFIX = os.getenv("STOREFRONT_WALLET_INVOICE_PREFIX", "WLINV")
WALLET_ADMIN_PREFIX = os.getenv("STOREFRONT_WALLET_ADMIN_PREFIX", "WLADM")
