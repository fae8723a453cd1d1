from typing import Any, List, Optional


def coerce_page_number(value: Any) -> Optional[int]:
    """Return `value` as a 1-based page number, or None if it is not one.

    Accepts ints and integral floats (JSON may carry `3.0`). Booleans,
    strings and non-positive numbers are rejected.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        page = value
    elif isinstance(value, float) and value.is_integer():
        page = int(value)
    else:
        return None
    return page if page >= 1 else None


def parse_page_range(total_pages: int, page_range: Optional[str]) -> List[int]:
    """Return zero-based page indices for a flexible range.
    Supports: None or "all", "first", "last", "N", "S-E", "S-", "-E".
    """
    if total_pages <= 0:
        return []
    spec = "" if page_range is None else str(page_range).strip().lower()
    if spec in ("", "all"):
        return list(range(total_pages))
    if spec == "first":
        return [0]
    if spec == "last":
        return [total_pages - 1]

    try:
        if "-" in spec:
            head, tail = (part.strip() for part in spec.split("-", 1))
            start = int(head) if head else 1
            end = int(tail) if tail else total_pages
        else:
            start = end = int(spec)
    except ValueError:
        raise ValueError(f"Invalid page range: {page_range}") from None

    if start < 1 or end < start or start > total_pages:
        raise ValueError(f"Page range {page_range} out of bounds (1-{total_pages})")
    return list(range(start - 1, min(end, total_pages)))
