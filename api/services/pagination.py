"""Page number/size to SQL offset/limit."""

from schemas import PaginationQuery


def get_sql_pagination(params: PaginationQuery) -> tuple[int | None, int | None]:
    """Returns (offset, limit). Both are None when the caller did not paginate."""
    offset = None
    if params.page_number is not None and params.page_size is not None:
        offset = (params.page_number - 1) * params.page_size
    return offset, params.page_size
