import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import BaseModel
from pymongo import DESCENDING

from database import serialize, to_object_id
from errors import PaginationError
from query import Node, from_mapping, render, search_query

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
DEFAULT_SORT = [("created_at", DESCENDING)]

SortSpec = Union[str, Mapping[str, int], Sequence[Tuple[str, int]]]
SelectSpec = Union[str, Mapping[str, int]]


@dataclass(frozen=True)
class Populate:
    """Replace the id stored in ``field`` with the document it references."""

    field: str
    collection: str
    select: Optional[SelectSpec] = None


class PageInfo(BaseModel):
    current_page: int
    total_pages: int
    total_count: int
    limit: int
    has_next_page: bool
    has_prev_page: bool
    next_page: Optional[int] = None
    prev_page: Optional[int] = None


class Page(BaseModel):
    success: bool = True
    data: List[Dict[str, Any]]
    pagination: PageInfo


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def clamp_page(page: Any) -> int:
    return max(1, _as_int(page, DEFAULT_PAGE))


def clamp_limit(limit: Any) -> int:
    return min(max(1, _as_int(limit, DEFAULT_LIMIT)), MAX_LIMIT)


def parse_sort(sort: Optional[SortSpec]) -> List[Tuple[str, int]]:
    if not sort:
        return list(DEFAULT_SORT)
    if isinstance(sort, str):
        keys = []
        for token in sort.replace(",", " ").split():
            field = token.lstrip("+-")
            if not field:
                continue
            keys.append((field, DESCENDING if token.startswith("-") else 1))
        return keys or list(DEFAULT_SORT)
    if isinstance(sort, Mapping):
        return [(k, int(v)) for k, v in sort.items()]
    return [(k, int(v)) for k, v in sort]


def parse_select(select: Optional[SelectSpec]) -> Optional[Dict[str, int]]:
    if not select:
        return None
    if isinstance(select, Mapping):
        return dict(select)
    projection = {}
    for token in select.replace(",", " ").split():
        if token.startswith("-"):
            projection[token[1:]] = 0
        else:
            projection[token] = 1
    return projection or None


def build_page_info(page: int, limit: int, total_count: int) -> PageInfo:
    total_pages = math.ceil(total_count / limit)
    current_page = page
    if page > total_pages > 0:
        # Reported page is clamped; the data was fetched for the requested offset.
        logger.warning("Requested page %s exceeds total pages %s", page, total_pages)
        current_page = total_pages
    has_next = current_page < total_pages
    has_prev = current_page > 1
    return PageInfo(
        current_page=current_page,
        total_pages=total_pages,
        total_count=total_count,
        limit=limit,
        has_next_page=has_next,
        has_prev_page=has_prev,
        next_page=current_page + 1 if has_next else None,
        prev_page=current_page - 1 if has_prev else None,
    )


def _populate(db, docs: List[dict], spec: Populate):
    ids = {to_object_id(d.get(spec.field)) for d in docs if d.get(spec.field)}
    ids.discard(None)
    if not ids:
        return
    found = db[spec.collection].find({"_id": {"$in": list(ids)}}, parse_select(spec.select))
    by_id = {str(ref["_id"]): ref for ref in found}
    for d in docs:
        ref = by_id.get(str(d.get(spec.field)))
        if ref is not None:
            d[spec.field] = ref


def paginate(
    collection,
    page: Any = DEFAULT_PAGE,
    limit: Any = DEFAULT_LIMIT,
    filter: Union[Mapping[str, Any], Node, None] = None,
    search: Optional[str] = None,
    search_fields: Sequence[str] = (),
    sort: Optional[SortSpec] = None,
    select: Optional[SelectSpec] = None,
    populate: Sequence[Populate] = (),
) -> Page:
    """Fetch one page of ``collection`` together with its counters.

    ``filter`` may be a plain field mapping or a query node. When ``search``
    and ``search_fields`` are both given, records must also match the term
    (case-insensitive substring) in at least one of the fields.
    """
    valid_page = clamp_page(page)
    valid_limit = clamp_limit(limit)
    skip = (valid_page - 1) * valid_limit

    base = from_mapping(filter) if isinstance(filter, Mapping) else filter
    query = render(search_query(base, search, search_fields))

    try:
        cursor = collection.find(query, parse_select(select))
        cursor = cursor.sort(parse_sort(sort)).skip(skip).limit(valid_limit)
        data = list(cursor)
        total_count = collection.count_documents(query)
        for spec in populate:
            _populate(collection.database, data, spec)
    except Exception as e:
        code = getattr(e, "code", None)
        raise PaginationError(str(e), code=str(code) if code else None) from e

    return Page(data=serialize(data), pagination=build_page_info(valid_page, valid_limit, total_count))
