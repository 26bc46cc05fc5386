"""Application-wide constants.

This module defines constants used throughout the application
to avoid magic numbers and ensure consistency.
"""

# Built-in roles
SUPER_ADMIN_ROLE = "super_admin"
ADMIN_ROLE = "admin"

# Permission code prefixes
PAGE_PREFIX = "page"
FEATURE_PREFIX = "feature"
ACTION_PREFIX = "action"

# Permission cache
DEFAULT_PERMISSION_CACHE_TTL_SECONDS = 60
PERMISSION_CACHE_KEY_PREFIX = "perms"
WAREHOUSE_CACHE_KEY_PREFIX = "warehouses"

# Request inputs checked for a warehouse identifier, in precedence order
WAREHOUSE_ID_FIELDS = ("warehouse_id", "warehouseId")

# String field lengths
MAX_PERMISSION_CODE_LENGTH = 150
MAX_CATEGORY_LENGTH = 50
MAX_NAME_LENGTH = 255
MAX_ROLE_NAME_LENGTH = 100
MAX_WAREHOUSE_CODE_LENGTH = 50

# Secret key requirements
MIN_SECRET_KEY_LENGTH = 32
DEFAULT_INSECURE_SECRET = "change-me-in-production"
