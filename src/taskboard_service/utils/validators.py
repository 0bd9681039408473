"""Validation functions for user input."""

import re

EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
)

USERNAME_PATTERN = re.compile(
    r"^[a-zA-Z0-9][a-zA-Z0-9_.-]{1,63}$"
)

# Document field names usable in equality filters
FIELD_NAME_PATTERN = re.compile(r"^[a-z_][a-z0-9_]{0,63}$")


def validate_email(email: str) -> bool:
    """
    Validate an email address format.

    Args:
        email: The email address to validate.

    Returns:
        True if the email is valid, False otherwise.

    Examples:
        >>> validate_email("user@example.com")
        True
        >>> validate_email("invalid-email")
        False
    """
    if not email or not isinstance(email, str):
        return False
    return bool(EMAIL_PATTERN.match(email.strip()))


def validate_username(username: str) -> bool:
    """
    Validate a username.

    Username must:
    - Start with a letter or digit
    - Be 2-64 characters long
    - Contain only letters, numbers, dots, hyphens and underscores

    Examples:
        >>> validate_username("john_doe")
        True
        >>> validate_username("_hidden")
        False
    """
    if not username or not isinstance(username, str):
        return False
    return bool(USERNAME_PATTERN.match(username))


def validate_field_name(name: str) -> bool:
    """Check that a document field name is safe to use in a store query."""
    return bool(FIELD_NAME_PATTERN.match(name))
