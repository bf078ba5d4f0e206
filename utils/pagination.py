"""Search and pagination helpers for the browse tables.

The backend returns whole collections; the dashboard filters and pages them
in memory, so every table shares the same two steps:

    rows = filter_rows(rows, q, ("contributor_name", "tola_name"))
    page = paginate(rows, page=3, per_page=20)
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Sequence


def _field_value(row: Any, name: str) -> Any:
    """Look up a dotted field on a dict or object (``tola.tola_name``)."""
    value = row
    for part in name.split("."):
        if value is None:
            return None
        if isinstance(value, dict):
            value = value.get(part)
        else:
            value = getattr(value, part, None)
    return value


def filter_rows(rows: Iterable[Any], query: str | None,
                fields: Sequence[str | Callable[[Any], Any]]) -> list[Any]:
    """Keep rows where any of *fields* contains *query* (case-insensitive).

    Args:
        rows: Dicts or objects to filter.
        query: Search text; blank keeps every row.
        fields: Field names (dotted paths allowed) or callables returning
            the text to search.

    Returns:
        Filtered list in the original order.
    """
    rows = list(rows)
    needle = (query or "").strip().lower()
    if not needle:
        return rows
    kept = []
    for row in rows:
        for f in fields:
            value = f(row) if callable(f) else _field_value(row, f)
            if value is not None and needle in str(value).lower():
                kept.append(row)
                break
    return kept


@dataclass
class Page:
    """One page of an in-memory collection."""

    items: list[Any]
    page: int
    per_page: int
    total: int
    total_pages: int
    offset: int = 0
    numbered: list[tuple[int, Any]] = field(default_factory=list)

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def display_pages(self) -> int:
        """Page count as shown to users ("Page 1 of 1" for an empty table)."""
        return max(self.total_pages, 1)


def paginate(rows: Sequence[Any], page: int | str | None = 1, per_page: int = 20) -> Page:
    """Slice *rows* into a page.

    ``total_pages`` is ``ceil(total / per_page)`` (0 for an empty list) and
    the requested page is clamped into ``1..max(total_pages, 1)``. Row
    numbers in ``numbered`` continue across pages.
    """
    try:
        page_no = int(page or 1)
    except (TypeError, ValueError):
        page_no = 1
    per_page = max(1, per_page)
    total = len(rows)
    total_pages = (total + per_page - 1) // per_page
    page_no = min(max(1, page_no), max(total_pages, 1))
    offset = (page_no - 1) * per_page
    items = list(rows[offset:offset + per_page])
    return Page(
        items=items,
        page=page_no,
        per_page=per_page,
        total=total,
        total_pages=total_pages,
        offset=offset,
        numbered=[(offset + i + 1, item) for i, item in enumerate(items)],
    )
