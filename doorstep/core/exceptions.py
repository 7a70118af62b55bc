"""Custom application exceptions.

Every error raised by the service layer carries its HTTP status code; the
exception handler in ``doorstep.middleware.error_handler`` maps them once at
the request boundary.
"""


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code."""
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class ValidationError(AppException):
    """Bad input the caller can fix."""

    def __init__(self, message: str = "Validation error"):
        """Initialize with 400 status code."""
        super().__init__(message, status_code=400)


class AuthenticationError(AppException):
    """Missing or invalid credential."""

    def __init__(self, message: str = "Could not validate credentials"):
        """Initialize with 401 status code."""
        super().__init__(message, status_code=401)


class AuthorizationError(AppException):
    """Authenticated caller lacks the required role or ownership."""

    def __init__(self, message: str = "Forbidden"):
        """Initialize with 403 status code."""
        super().__init__(message, status_code=403)


class NotFoundError(AppException):
    """Referenced entity does not exist."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize with 404 status code."""
        super().__init__(message, status_code=404)


class ConflictError(AppException):
    """Request conflicts with the current state of the resource."""

    def __init__(self, message: str = "Conflict"):
        """Initialize with 409 status code."""
        super().__init__(message, status_code=409)


class RateLimitError(AppException):
    """Rate limit exceeded exception."""

    def __init__(self, message: str = "Rate limit exceeded"):
        """Initialize with 429 status code."""
        super().__init__(message, status_code=429)


class ConfigurationError(AppException):
    """Operator-fixable misconfiguration, such as a missing secret."""

    def __init__(self, message: str = "Service is not configured"):
        """Initialize with 500 status code."""
        super().__init__(message, status_code=500)


class GatewayError(AppException):
    """The payment provider failed or rejected the request."""

    def __init__(self, message: str = "Payment provider error"):
        """Initialize with 502 status code."""
        super().__init__(message, status_code=502)
