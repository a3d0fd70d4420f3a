"""Text processing utilities."""

import re

from rolekit.core.constants import MAX_SLUG_LENGTH


def generate_slug(name: str, max_length: int = MAX_SLUG_LENGTH) -> str:
    """Generate a slug from a role or permission name.

    Converts the input string to a slug by:
    - Converting to lowercase
    - Removing special characters
    - Replacing spaces, underscores and hyphens with single hyphens
    - Truncating to max_length

    Args:
        name: The input string to slugify
        max_length: Maximum length of output slug

    Returns:
        Lowercase hyphenated slug

    Examples:
        >>> generate_slug("Edit Posts")
        'edit-posts'
        >>> generate_slug("Super  Admin!")
        'super-admin'
    """
    slug = name.lower().strip()
    slug = re.sub(r"[^\w\s-]", "", slug)
    slug = re.sub(r"[-\s_]+", "-", slug)
    return slug.strip("-")[:max_length]


def is_numeric_reference(value: str) -> bool:
    """Check whether a string consists only of ASCII decimal digits.

    Examples:
        >>> is_numeric_reference("42")
        True
        >>> is_numeric_reference("4a")
        False
    """
    return value.isascii() and value.isdigit()
