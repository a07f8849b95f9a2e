import math


def ok(data=None):
    """Standard success envelope."""
    return {"ok": True, "data": data, "error": None}


def error(code: str = "internal_error", message: str = "An internal error occurred"):
    """Standard error envelope."""
    return {"ok": False, "data": None, "error": {"code": code, "message": message}}


def paginated(items, page: int, limit: int, total: int):
    """Success envelope for list endpoints."""
    return ok({
        "items": items,
        "pagination": {"page": page, "limit": limit, "total": total, "pages": math.ceil(total / limit) if limit else 0},
    })
