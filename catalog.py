"""
Product search: turns free-form query parameters into one Mongo query.

parse_product_filter() reads the raw parameters into an immutable
ProductFilter, build_product_query() turns that into a CatalogQuery, and
find_products() runs it. Search, range, category, rating and equality
filters are AND-ed; the search term itself is an OR over name and
description.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

import structlog
from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database

import config

log = structlog.get_logger(__name__)

PRODUCT_COLLECTION = "product"

DEFAULT_SORT_TERM = "createdAt"
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10

SEARCH_FIELDS = ("name", "description")

RESERVED_KEYS = frozenset({
    "searchTerm", "page", "limit", "sortTerm", "sortOrder",
    "minPrice", "maxPrice", "categories", "minRating",
})

# Stored product fields and the type equality filters are coerced to
PRODUCT_FIELDS = {
    "name": str,
    "description": str,
    "price": float,
    "stock": int,
    "category": str,
    "rating": float,
    "imageUrl": str,
}


@dataclass(frozen=True)
class ProductFilter:
    search_term: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    categories: Tuple[str, ...] = ()
    min_rating: Optional[float] = None
    equals: Tuple[Tuple[str, Any], ...] = ()
    sort_term: str = DEFAULT_SORT_TERM
    descending: bool = False
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT


@dataclass(frozen=True)
class CatalogQuery:
    filter: Dict[str, Any]
    sort: List[Tuple[str, int]]
    skip: int
    limit: int
    page: int = DEFAULT_PAGE


@dataclass
class ProductPage:
    items: List[Dict[str, Any]] = field(default_factory=list)
    total: int = 0
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT


def _number(value) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _positive_int(value, default: int) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed >= 1 else default


def _coerce(key: str, value):
    """Cast an equality value to the stored field type, as a document mapper would."""
    kind = PRODUCT_FIELDS.get(key)
    if kind is None or kind is str or not isinstance(value, str):
        return value
    try:
        return kind(value)
    except ValueError:
        return value


def parse_product_filter(params: Mapping[str, Any], strict_fields: Optional[bool] = None) -> ProductFilter:
    """Read inbound query parameters. Never raises; bad numbers fall back or drop out."""
    if strict_fields is None:
        strict_fields = config.STRICT_FILTER_FIELDS

    search_term = params.get("searchTerm")
    if search_term is not None:
        search_term = str(search_term).strip()

    categories = ()
    raw_categories = params.get("categories")
    if raw_categories:
        categories = tuple(c.strip() for c in str(raw_categories).split(",") if c.strip())

    equals = []
    for key in sorted(params):
        if key in RESERVED_KEYS:
            continue
        if str(key).startswith("$"):
            # operators are never field names
            log.debug("filter_key_dropped", key=key)
            continue
        if strict_fields and key not in PRODUCT_FIELDS:
            log.debug("filter_key_dropped", key=key)
            continue
        equals.append((key, _coerce(key, params[key])))

    sort_term = str(params.get("sortTerm") or DEFAULT_SORT_TERM)
    if sort_term.startswith("$"):
        sort_term = DEFAULT_SORT_TERM
    sort_order = str(params.get("sortOrder") or "asc").lower()

    return ProductFilter(
        search_term=search_term or None,
        min_price=_number(params.get("minPrice")),
        max_price=_number(params.get("maxPrice")),
        categories=categories,
        min_rating=_number(params.get("minRating")),
        equals=tuple(equals),
        sort_term=sort_term,
        descending=sort_order == "desc",
        page=_positive_int(params.get("page"), DEFAULT_PAGE),
        limit=_positive_int(params.get("limit"), DEFAULT_LIMIT),
    )


def build_product_query(criteria: ProductFilter) -> CatalogQuery:
    clauses: List[Dict[str, Any]] = []

    if criteria.search_term:
        pattern = re.escape(criteria.search_term)
        clauses.append({"$or": [
            {name: {"$regex": pattern, "$options": "i"}} for name in SEARCH_FIELDS
        ]})

    price: Dict[str, float] = {}
    if criteria.min_price is not None:
        price["$gte"] = criteria.min_price
    if criteria.max_price is not None:
        price["$lte"] = criteria.max_price
    if price:
        clauses.append({"price": price})

    if criteria.categories:
        clauses.append({"category": {"$in": list(criteria.categories)}})

    if criteria.min_rating is not None:
        clauses.append({"rating": {"$gte": criteria.min_rating}})

    for key, value in criteria.equals:
        clauses.append({key: value})

    if not clauses:
        query: Dict[str, Any] = {}
    elif len(clauses) == 1:
        query = clauses[0]
    else:
        query = {"$and": clauses}

    direction = DESCENDING if criteria.descending else ASCENDING
    sort = [(criteria.sort_term, direction)]
    if criteria.sort_term != "_id":
        # tie-break so pages never overlap
        sort.append(("_id", direction))

    return CatalogQuery(
        filter=query,
        sort=sort,
        skip=(criteria.page - 1) * criteria.limit,
        limit=criteria.limit,
        page=criteria.page,
    )


def find_products(database: Database, query: CatalogQuery) -> ProductPage:
    collection = database[PRODUCT_COLLECTION]
    cursor = collection.find(query.filter).sort(query.sort).skip(query.skip).limit(query.limit)
    items = list(cursor)
    total = collection.count_documents(query.filter)
    log.debug("products_listed", filter=query.filter, returned=len(items), total=total)
    return ProductPage(items=items, total=total, page=query.page, limit=query.limit)


def search_products(database: Database, params: Mapping[str, Any]) -> ProductPage:
    return find_products(database, build_product_query(parse_product_filter(params)))
