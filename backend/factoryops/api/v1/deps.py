"""
API Dependencies

Common query parameter dependencies shared by list endpoints.
"""
from fastapi import Query

from factoryops.core.config import settings
from factoryops.schemas.common import PaginationParams


def get_pagination_params(
    offset: int = Query(
        default=0,
        ge=0,
        description="Number of records to skip (for pagination)"
    ),
    limit: int = Query(
        default=settings.DEFAULT_PAGE_SIZE,
        ge=1,
        le=500,
        description="Maximum number of records to return (1-500)"
    )
) -> PaginationParams:
    """
    Dependency for standardized pagination parameters.

    Args:
        offset: Number of records to skip (default: 0)
        limit: Maximum records to return (default: DEFAULT_PAGE_SIZE, max: 500)

    Returns:
        PaginationParams object with validated offset and limit
    """
    return PaginationParams(offset=offset, limit=limit)
