"""Package-wide constants.

This module defines constants used throughout the authorization core
to avoid magic numbers and ensure consistency.
"""

# Slug generation
MAX_SLUG_LENGTH = 255

# String field lengths
MAX_NAME_LENGTH = 255

# Cache defaults
DEFAULT_CACHE_TTL_SECONDS = 60 * 60 * 24  # 24 hours
DEFAULT_CACHE_KEY_PREFIX = "roles_permissions."
DEFAULT_CACHE_EVICTION_INTERVAL_SECONDS = 300

# Route annotations separate alternatives with a pipe
REFERENCE_TOKEN_SEPARATOR = "|"
