"""
Registry-related exceptions

Provides a hierarchy of exceptions for different registry failure modes,
enabling precise error handling in client code.
"""

AUTH_ERROR_PATTERNS = (
    "401",
    "unauthorized",
    "authentication failed",
    "invalid credentials",
    "access denied",
    "403",
    "forbidden",
    "denied",
)


class RegistryError(Exception):
    """Base exception for registry operations"""

    pass


class RegistryConnectionError(RegistryError):
    """Registry connection failed"""

    pass


class RegistryValidationError(RegistryError):
    """Response validation failed"""

    pass


class RegistryAuthError(RegistryError):
    """Registry rejected the credentials"""

    pass


class RegistryNotFoundError(RegistryError):
    """Manifest, blob or repository does not exist"""

    pass


def is_authentication_error(error: Exception) -> bool:
    """Check whether an error looks like an authentication failure."""
    if isinstance(error, RegistryAuthError):
        return True
    text = str(error).lower()
    return any(pattern in text for pattern in AUTH_ERROR_PATTERNS)
