"""
Shared module for the ambient stack of the storefront core.

STRUCTURE:
- shared.config: Configuration
  - settings.py: Environment config (pydantic-settings)
  - logging.py: Structured logging
  - constants.py: Sort keys, pagination and cart limits, error codes

- shared.infrastructure: Database
  - db.py: SQLAlchemy engine and sessions, safe_commit(), translate_store_errors()

- shared.utils: Utilities
  - exceptions.py: Typed core errors with auto-logging
  - validators.py: Input normalization (search terms, id lists, JSON columns)

IMPORT EXAMPLES:
    from shared.infrastructure.db import get_db_context, safe_commit
    from shared.config.settings import settings
    from shared.config.constants import SortOption, CartLimits
    from shared.utils.exceptions import NotFoundError, BusinessRuleError
    from shared.utils.validators import parse_id_list
"""
