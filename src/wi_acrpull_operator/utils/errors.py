"""Error sanitization utilities to prevent credential leakage."""

import re


# Patterns that might expose sensitive information
SENSITIVE_PATTERNS = [
    r"(access_token=)[^&\s]+",
    r"(refresh_token=)[^&\s]+",
    r"(client_assertion=)[^&\s]+",
    r'("(?:access_token|refresh_token|identitytoken|id_token)"\s*:\s*")[^"]+',
    r"(bearer\s+)[A-Za-z0-9\-_\.=]+",
]

# JWTs are three base64url segments; the header always starts with "eyJ"
JWT_PATTERN = r"eyJ[A-Za-z0-9_\-]+\.[A-Za-z0-9_\-]+\.[A-Za-z0-9_\-]*"


def sanitize_error_message(message: str) -> str:
    """Sanitize error message to remove tokens and assertions.

    Args:
        message: Original error message

    Returns:
        Sanitized error message with sensitive data redacted
    """
    sanitized = message

    for pattern in SENSITIVE_PATTERNS:
        sanitized = re.sub(pattern, r"\1[REDACTED]", sanitized, flags=re.IGNORECASE)

    sanitized = re.sub(JWT_PATTERN, "[REDACTED]", sanitized)

    return sanitized


def sanitize_exception(error: Exception) -> str:
    """Sanitize exception message.

    Args:
        error: Exception object

    Returns:
        Sanitized error message
    """
    return sanitize_error_message(str(error))

