# identity_api/shared/utils/pagination.py

from identity_api.domain.exceptions import InvalidArgumentError

MIN_PAGE = 0
MIN_PAGE_SIZE = 1
MAX_PAGE_SIZE = 100


def validate_page(page: int, limit: int) -> int:
    """
    Validate offset pagination and return the number of rows to skip.

    Raises:
        InvalidArgumentError: If page < 0 or limit is outside [1, 100]
    """
    errors = {}
    if page < MIN_PAGE:
        errors["page"] = f"must be >= {MIN_PAGE}"
    if limit < MIN_PAGE_SIZE or limit > MAX_PAGE_SIZE:
        errors["limit"] = f"must be between {MIN_PAGE_SIZE} and {MAX_PAGE_SIZE}"
    if errors:
        raise InvalidArgumentError(detail="Invalid pagination parameters", fields=errors)
    return page * limit
