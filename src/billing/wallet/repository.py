"""Repository for the WalletAccount aggregate."""

from billing.domain import billing
from billing.wallet.wallet import WalletAccount


@billing.repository(part_of=WalletAccount)
class WalletRepository:
    def get_by_user_id(self, user_id) -> WalletAccount | None:
        owner = str(user_id).strip() if user_id is not None else ""
        if not owner:
            return None
        results = self._dao.query.filter(user_id=owner).all().items
        return results[0] if results else None
