"""
Translate raw query-string parameters into a MongoDB filter and options.

Only known keys are read; every value is parsed by a dedicated helper
that returns ``None`` for anything it does not accept, in which case the
field default is used (or the filter term is left out).  The resulting
filter only ever holds plain strings, numbers and booleans, so it can be
passed to the driver as-is.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100

EXACT_MATCH_FIELDS = ("category", "subCategory")
BOOLEAN_FIELDS = ("isFeatured", "isFlash")
SORTABLE_FIELDS = frozenset({
    "id",
    "title",
    "price",
    "discountPrice",
    "ratingCount",
    "avgRate",
    "category",
    "subCategory",
    "createdAt",
    "updatedAt",
})

ASCENDING = 1
DESCENDING = -1

# Largest integer BSON can carry.
INT64_MAX = 2 ** 63 - 1


@dataclass
class QueryOptions:
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    skip: int = 0
    sort: Optional[List[Tuple[str, int]]] = None
    random: bool = False


def parse_positive_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        number = value
    elif isinstance(value, str) and value.strip().isascii() and value.strip().isdigit():
        number = int(value.strip())
    else:
        return None
    return number if 1 <= number <= INT64_MAX else None


def parse_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        return None
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        number = float(value)
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def parse_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    return None


def parse_text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def parse_sort(value: Any) -> Optional[List[Tuple[str, int]]]:
    """Parse ``"price"``, ``"-price"`` or ``"-avgRate,price"``.

    Fields outside ``SORTABLE_FIELDS`` are dropped.  Returns ``None`` when
    nothing usable is left, meaning natural order.
    """
    if not isinstance(value, str):
        return None
    sort: List[Tuple[str, int]] = []
    seen = set()
    for token in value.split(","):
        token = token.strip()
        direction = ASCENDING
        if token.startswith("-"):
            direction = DESCENDING
            token = token[1:]
        if token in SORTABLE_FIELDS and token not in seen:
            seen.add(token)
            sort.append((token, direction))
    return sort or None


def build_filter(query: Mapping[str, Any]) -> Dict[str, Any]:
    filt: Dict[str, Any] = {}
    for name in EXACT_MATCH_FIELDS:
        text = parse_text(query.get(name))
        if text is not None:
            filt[name] = text

    price_filter: Dict[str, float] = {}
    min_price = parse_number(query.get("minPrice"))
    max_price = parse_number(query.get("maxPrice"))
    if min_price is not None:
        price_filter["$gte"] = min_price
    if max_price is not None:
        price_filter["$lte"] = max_price
    if price_filter:
        filt["price"] = price_filter

    for name in BOOLEAN_FIELDS:
        flag = parse_bool(query.get(name))
        if flag is not None:
            filt[name] = flag
    return filt


def build_options(query: Mapping[str, Any]) -> QueryOptions:
    limit = min(parse_positive_int(query.get("limit")) or DEFAULT_LIMIT, MAX_LIMIT)
    page = parse_positive_int(query.get("page")) or DEFAULT_PAGE
    if (page - 1) * limit > INT64_MAX:
        page = DEFAULT_PAGE
    if parse_bool(query.get("random")):
        return QueryOptions(page=page, limit=limit, skip=0, sort=None, random=True)
    return QueryOptions(
        page=page,
        limit=limit,
        skip=(page - 1) * limit,
        sort=parse_sort(query.get("sort")),
        random=False,
    )


def build_query_options(query: Optional[Mapping[str, Any]]) -> Tuple[Dict[str, Any], QueryOptions]:
    """Return ``(filter, options)`` for a raw query mapping.  Never raises."""
    if query is None or not hasattr(query, "get"):
        query = {}
    return build_filter(query), build_options(query)
