"""
API Response Utilities

Unified response format for all API endpoints.
"""
import math
from typing import Any, Dict, List, Optional

from fastapi.responses import JSONResponse

import config
from core.errors import ErrorCode


def success(data: Any = None, message: str = None, status_code: int = 200) -> JSONResponse:
    """Return success response"""
    return JSONResponse(
        content={
            "success": True,
            "data": data,
            "message": message
        },
        status_code=status_code
    )


def created(data: Any = None, message: str = None) -> JSONResponse:
    return success(data, message, status_code=201)


def paginated(items: List[Any], total: int, page: int, limit: int) -> JSONResponse:
    """Return a page of items with pagination metadata"""
    page, limit = max(1, page), max(1, min(limit, config.MAX_PAGE_LIMIT))
    return JSONResponse(
        content={
            "success": True,
            "data": items,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "totalPages": math.ceil(total / limit) if limit else 0,
            },
        }
    )


def error(message: str, code: str = ErrorCode.INTERNAL_ERROR.value, status_code: int = 400,
          details: Optional[Dict[str, Any]] = None) -> JSONResponse:
    """Return error response"""
    content = {"success": False, "error": message, "code": code}
    if details:
        content["details"] = details
    return JSONResponse(content=content, status_code=status_code)
