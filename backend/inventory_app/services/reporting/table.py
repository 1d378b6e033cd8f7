"""
Report Table Helper
Server-side filtering, sorting and paging of report rows
"""
import math
from typing import Any, Dict, List, Optional

from inventory_app.core.config import settings
from inventory_app.core.exceptions import ValidationError


def _matches(row: Dict[str, Any], needle: str) -> bool:
    return any(needle in str(value).lower() for value in row.values() if value is not None)


def _sort_key(value: Any):
    # numbers before text so mixed columns still compare
    if isinstance(value, (int, float)) or hasattr(value, "is_finite"):
        return (0, value, "")
    return (1, 0, str(value).lower())


def paginate_rows(
    rows: List[Dict[str, Any]],
    page: int = 1,
    page_size: Optional[int] = None,
    sort_by: Optional[str] = None,
    sort_dir: str = "asc",
    filter_text: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Filter, sort and slice rows for one page of a report table

    filter_text is a case-insensitive substring matched against every value
    of a row. page is 1-based; page_size defaults to REPORT_PAGE_SIZE and is
    capped at REPORT_MAX_PAGE_SIZE.
    """
    if page < 1:
        raise ValidationError("page must be 1 or greater")
    page_size = page_size or settings.REPORT_PAGE_SIZE
    if page_size < 1:
        raise ValidationError("page_size must be 1 or greater")
    page_size = min(page_size, settings.REPORT_MAX_PAGE_SIZE)

    if filter_text:
        needle = filter_text.lower()
        rows = [row for row in rows if _matches(row, needle)]

    if sort_by:
        present = [row for row in rows if row.get(sort_by) is not None]
        missing = [row for row in rows if row.get(sort_by) is None]
        present.sort(key=lambda row: _sort_key(row[sort_by]), reverse=(sort_dir.lower() == "desc"))
        rows = present + missing

    total = len(rows)
    total_pages = max(1, math.ceil(total / page_size))
    start = (page - 1) * page_size

    return {
        "items": rows[start:start + page_size],
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_previous": page > 1,
    }
