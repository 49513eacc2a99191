"""
Input validation utilities.
"""

import re
from typing import Any

from personalizer.utils.exceptions import InvalidTokenError, PreferenceValidationError


HEX_COLOR_PATTERN = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
TOKEN_PATTERN = re.compile(r"^[a-zA-Z0-9 #'&/_-]+$")

CONFIDENCE_LEVELS = (0, 20, 50, 75, 95)
BLOCK_DIMENSIONS = ("colors", "styles", "patterns", "fits")
SOFT_DIMENSIONS = ("colors", "styles")


def is_hex_color(value: str) -> bool:
    """Check whether a string is a #RGB or #RRGGBB hex color."""
    return bool(HEX_COLOR_PATTERN.match(value or ""))


def validate_token(token: Any, kind: str = "color") -> str:
    """
    Validate and normalize a color or style token.

    Args:
        token: Raw token value.
        kind: Token kind used in the error context.

    Returns:
        The stripped, lowercased token.

    Raises:
        InvalidTokenError: If the token is empty, too long or contains
            characters outside the allowed set.
    """
    if not isinstance(token, str):
        raise InvalidTokenError(f"{kind} token must be a string", token=token, kind=kind)

    cleaned = token.strip()
    if not cleaned:
        raise InvalidTokenError(f"{kind} token cannot be empty", token=token, kind=kind)
    if len(cleaned) > 64:
        raise InvalidTokenError(f"{kind} token is too long", token=token, kind=kind)
    if cleaned.startswith("#"):
        if not is_hex_color(cleaned):
            raise InvalidTokenError(f"Malformed hex {kind}: {cleaned}", token=token, kind=kind)
        return cleaned.lower()
    if not TOKEN_PATTERN.match(cleaned):
        raise InvalidTokenError(f"Malformed {kind} token: {cleaned}", token=token, kind=kind)
    return cleaned.lower()


def validate_user_id(user_id: Any) -> str:
    """
    Validate a user identifier.

    Raises:
        PreferenceValidationError: If the id is not a non-empty string.
    """
    if not isinstance(user_id, str) or not user_id.strip():
        raise PreferenceValidationError("User id must be a non-empty string", field="user_id", value=user_id)
    return user_id.strip()


def validate_dimension(dimension: str, soft: bool = False) -> str:
    """
    Validate a blocklist dimension name.

    Args:
        dimension: Dimension such as "colors" or "styles".
        soft: Restrict to the dimensions the soft tier tracks.
    """
    allowed = SOFT_DIMENSIONS if soft else BLOCK_DIMENSIONS
    if dimension not in allowed:
        raise PreferenceValidationError(
            f"Unknown blocklist dimension '{dimension}'. Choose from: {list(allowed)}",
            field="dimension",
            value=dimension,
        )
    return dimension


def sanitize_filename(filename: str) -> str:
    """
    Sanitize a string to be safe for use as a filename.

    Args:
        filename: String to sanitize.

    Returns:
        Sanitized filename.
    """
    # Remove or replace invalid characters
    invalid_chars = r'[<>:"/\\|?*]'
    sanitized = re.sub(invalid_chars, "_", filename)

    # Remove leading/trailing spaces and dots
    sanitized = sanitized.strip(". ")

    max_length = 200
    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized or "unnamed"
