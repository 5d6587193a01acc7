"""Explicit, per-request pagination for the read side."""

from dataclasses import dataclass, field

from protean.exceptions import ValidationError

MAX_PAGE_SIZE = 100


def page_window(page, page_size):
    """Translate a 1-based ``page`` into ``(offset, limit)``."""
    errors = {}
    if not isinstance(page, int) or page < 1:
        errors["page"] = ["must be a positive integer"]
    if not isinstance(page_size, int) or not 1 <= page_size <= MAX_PAGE_SIZE:
        errors["page_size"] = [f"must be between 1 and {MAX_PAGE_SIZE}"]
    if errors:
        raise ValidationError(errors)
    return (page - 1) * page_size, page_size


@dataclass(frozen=True)
class Page:
    items: list = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 20

    @property
    def pages(self) -> int:
        return -(-self.total // self.page_size) if self.total else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.pages
