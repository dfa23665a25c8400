"""Repository for the DiscountCode aggregate."""

from ordering.discount.discount import DiscountCode, normalize_code
from ordering.domain import ordering


@ordering.repository(part_of=DiscountCode)
class DiscountCodeRepository:
    """Lookups by the normalized (trimmed, upper-cased) code."""

    def get_by_code(self, code) -> DiscountCode | None:
        normalized = normalize_code(code)
        if not normalized:
            return None
        results = self._dao.query.filter(code=normalized).all().items
        return results[0] if results else None

    def exists_by_code(self, code) -> bool:
        return self.get_by_code(code) is not None
