import math

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200


def page_offset(page: int, limit: int) -> int:
    return (page - 1) * limit


def page_payload(data, page: int, limit: int, total: int) -> dict:
    """Standard paginated envelope: {data, page, limit, total, total_pages}."""
    return {
        "data": data,
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": math.ceil(total / limit) if total else 0,
    }
