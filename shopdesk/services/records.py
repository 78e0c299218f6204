"""Search, sort and labelling helpers shared by every listing endpoint."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence, TypeVar

T = TypeVar("T")

NEUTRAL_STATUS_COLOR = "bg-gray-100 text-gray-800 border-gray-200"

STATUS_COLORS: dict[str, str] = {
    "available": "bg-green-100 text-green-800 border-green-200",
    "loaned": "bg-yellow-100 text-yellow-800 border-yellow-200",
    "sold": "bg-blue-100 text-blue-800 border-blue-200",
    "trade_in": "bg-purple-100 text-purple-800 border-purple-200",
    "active": "bg-green-100 text-green-800 border-green-200",
    "returned": "bg-gray-100 text-gray-800 border-gray-200",
    "expiring_soon": "bg-yellow-100 text-yellow-800 border-yellow-200",
    "expired": "bg-red-100 text-red-800 border-red-200",
}


def field_value(item: Any, field: str) -> Any:
    """Read ``field`` from a mapping or an object, ``None`` when absent."""

    if isinstance(item, Mapping):
        return item.get(field)
    return getattr(item, field, None)


def search_items(items: Sequence[T], query: str | None, fields: Iterable[str]) -> list[T]:
    """Case-insensitive substring search across ``fields``.

    A blank query returns every item unchanged. ``None`` values never match.
    """

    if not query or not query.strip():
        return list(items)
    needle = query.lower()
    fields = tuple(fields)

    def matches(item: T) -> bool:
        for field in fields:
            value = field_value(item, field)
            if value is not None and needle in str(value).lower():
                return True
        return False

    return [item for item in items if matches(item)]


def sort_items(items: Sequence[T], key: str, direction: str = "asc") -> list[T]:
    """Stable sort on one field with ``None`` values always placed last.

    Returns a new list; ``items`` is left untouched.
    """

    present = [item for item in items if field_value(item, key) is not None]
    missing = [item for item in items if field_value(item, key) is None]
    # ``sorted`` keeps equal keys in input order even with reverse=True.
    present = sorted(present, key=lambda item: field_value(item, key), reverse=direction == "desc")
    return present + missing


def filter_by_status(items: Sequence[T], status: str | None, field: str = "status") -> list[T]:
    if not status or status == "all":
        return list(items)
    return [item for item in items if field_value(item, field) == status]


def get_status_color(status: str | None) -> str:
    return STATUS_COLORS.get(status or "", NEUTRAL_STATUS_COLOR)


def generate_item_description(item: Any) -> str:
    """Label an item as "brand model [capacity] [color]"."""

    parts = [field_value(item, "brand"), field_value(item, "model")]
    for optional in ("capacity", "color"):
        value = field_value(item, optional)
        if value:
            parts.append(value)
    return " ".join(str(part) for part in parts if part is not None)


__all__ = [
    "STATUS_COLORS",
    "filter_by_status",
    "generate_item_description",
    "get_status_color",
    "search_items",
    "sort_items",
]
