from typing import Iterable, Optional, Sequence

from sqlalchemy import Select

from tictactoe.config import Config
from tictactoe.data_models.search import PageRequest, SortDirection, SortSpec
from tictactoe.utils.exceptions import InvalidArgumentError


def _normalize(field_name: str) -> str:
    """'createdAt', 'CreatedAt' and 'created_at' all normalize to 'createdat'"""
    return field_name.replace('_', '').lower()


def resolve_sort_field(field_name: str, allowed_fields: Sequence[str]) -> str:
    """
    Map a caller-supplied sort field to a column attribute name.

    Raises:
        InvalidArgumentError: If the field is not in the allowlist
    """
    lookup = {_normalize(name): name for name in allowed_fields}
    resolved = lookup.get(_normalize(field_name or ''))
    if resolved is None:
        allowed = ", ".join(allowed_fields)
        raise InvalidArgumentError(
            f"Sort field '{field_name}' not allowed",
            f"Invalid sort field: '{field_name}'. Allowed fields: {allowed}"
        )
    return resolved


def apply_sorting(
    query: Select,
    model,
    sorts: Optional[Iterable[SortSpec]],
    allowed_fields: Sequence[str],
    default: Sequence[SortSpec],
) -> Select:
    """Apply ORDER BY clauses in the given order, falling back to the default sort"""
    sorts = list(sorts or []) or list(default)

    for sort in sorts:
        column = getattr(model, resolve_sort_field(sort.field, allowed_fields))
        if sort.direction == SortDirection.DESCENDING:
            query = query.order_by(column.desc())
        else:
            query = query.order_by(column.asc())

    return query


def validate_page_request(page: Optional[PageRequest]) -> PageRequest:
    """Default and validate a page request"""
    page = page or PageRequest()
    if page.page_number < 1:
        raise InvalidArgumentError(
            f"Invalid page number {page.page_number}",
            "Page number must be greater than or equal to 1"
        )
    if not 1 <= page.page_size <= Config.MAX_PAGE_SIZE:
        raise InvalidArgumentError(
            f"Invalid page size {page.page_size}",
            f"Page size must be between 1 and {Config.MAX_PAGE_SIZE}"
        )
    return page
