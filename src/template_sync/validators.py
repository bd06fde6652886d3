"""
Input validation for template_sync identifiers.

Collection and artifact ids become directory names under the templates
root, so they are checked before any path is built from them.
"""

import re

_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


def format_validation_error(field_name: str, reason: str) -> str:
    """
    Generate consistent error message for validation failures.

    Args:
        field_name: Human-readable field name (e.g., "Artifact id")
        reason: Description of validation failure (e.g., "cannot be empty")

    Returns:
        Formatted error message string
    """
    return f"{field_name} {reason}"


def validate_identifier(value: str, field_name: str) -> tuple[bool, str]:
    """
    Validate an id that will be used as a single path segment.

    Args:
        value: The id to validate
        field_name: Label used in the error message

    Returns:
        Tuple of (is_valid, error_message).
        Returns (True, "") if valid, (False, reason) if invalid.

    Validation rules:
        - Cannot be empty or whitespace-only
        - Cannot contain '..' or path separators
        - Must start with a letter or digit and contain only
          letters, digits, '_', '.', '-'
    """
    if not value or not value.strip():
        return (False, format_validation_error(field_name, "cannot be empty"))

    if ".." in value:
        return (
            False,
            format_validation_error(field_name, "cannot contain '..'"),
        )

    if "/" in value or "\\" in value:
        return (
            False,
            format_validation_error(
                field_name, "cannot contain path separators"
            ),
        )

    if not _ID_PATTERN.match(value):
        return (
            False,
            format_validation_error(
                field_name,
                "may only contain letters, digits, '_', '.' and '-'",
            ),
        )

    return (True, "")


def require_identifier(value: str, field_name: str) -> str:
    """Return *value* unchanged, raising ValueError if it is not a valid id."""
    ok, reason = validate_identifier(value, field_name)
    if not ok:
        raise ValueError(reason)
    return value
