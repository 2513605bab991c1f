"""
Utilities module: Exceptions, validators.
"""

from shared.utils.exceptions import (
    AppException,
    ValidationError,
    NotFoundError,
    BusinessRuleError,
    StoreError,
)
from shared.utils.validators import (
    escape_like_pattern,
    sanitize_search_term,
    parse_id_list,
)

__all__ = [
    # exceptions
    "AppException",
    "ValidationError",
    "NotFoundError",
    "BusinessRuleError",
    "StoreError",
    # validators
    "escape_like_pattern",
    "sanitize_search_term",
    "parse_id_list",
]
