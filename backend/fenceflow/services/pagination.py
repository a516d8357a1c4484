# Overview: Shared ?page=&limit= handling for list endpoints.

from __future__ import annotations

import math
from typing import Mapping

from flask import current_app

from ..validation import collect_query_errors, parse_int_arg


def parse_pagination(args: Mapping[str, str]) -> tuple[int, int]:
    """
    Read page (1-indexed) and limit from query args.

    Raises ValidationError if page < 1 or limit is outside 1..MAX_PAGE_SIZE.
    """
    max_limit = current_app.config.get("MAX_PAGE_SIZE", 100)
    default_limit = current_app.config.get("DEFAULT_PAGE_SIZE", 20)

    page, limit = collect_query_errors(
        lambda: parse_int_arg(args, "page", minimum=1),
        lambda: parse_int_arg(args, "limit", minimum=1, maximum=max_limit),
    )
    return page or 1, limit or default_limit


def paginate(query, page: int, limit: int) -> tuple[list, dict]:
    """
    Apply offset/limit to an ordered query.

    Returns (rows, pagination) where pagination mirrors what the SPA reads:
    {"page", "limit", "total", "pages"}.
    """
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * limit).limit(limit).all()
    return rows, {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }
