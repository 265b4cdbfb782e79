"""
Murmur Backend — Custom Exception Hierarchy
============================================

What:  Application-specific exceptions for every failure kind a request can hit.
Why:   Each kind maps to exactly one HTTP status code and machine-readable
       error code, so services never deal with HTTP and routes never need
       try/except blocks.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses.
Who:   Raised by services, the auth dependency and id parsing; caught by
       global handlers.

Exception Hierarchy:
    MurmurError (base)
    ├── ValidationError            → 400 Bad Request
    │   └── SelfFollowError        → 400 Bad Request
    ├── DuplicateIdentityError     → 400 Bad Request
    ├── InvalidCredentialsError    → 400 Bad Request
    ├── AuthenticationError        → 401 Unauthorized
    ├── NotAuthorizedError         → 403 Forbidden
    │   └── NotConnectedError      → 403 Forbidden
    ├── NotFoundError              → 404 Not Found
    └── TransientStoreError        → 500 Internal Server Error (safe to retry)
"""

from typing import Any, Dict, Optional


class MurmurError(Exception):
    """
    Base exception for all Murmur application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client
                  unless the handler explicitly exposes it as `details`)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(MurmurError):
    """
    Raised when client input fails validation.

    When:    Malformed ids, empty required fields, whitespace-only content,
             a profile update without fields, a search query that is too short.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class SelfFollowError(ValidationError):
    """A user tried to follow or unfollow themselves."""

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message="You cannot follow yourself", context=context)


class DuplicateIdentityError(MurmurError):
    """
    Raised when a username or email is already registered.

    HTTP:    400 Bad Request
    Note:    The message does not say which of the two collided on register,
             matching the "User already exists" wording clients expect.
    """

    def __init__(
        self,
        message: str = "User already exists",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class InvalidCredentialsError(MurmurError):
    """
    Raised when login fails.

    The same message is used whether the email is unknown or the password is
    wrong, so the response cannot be used to probe for registered emails.
    HTTP:    400 Bad Request
    """

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(message="Invalid credentials", context=context)


class AuthenticationError(MurmurError):
    """
    Raised when a request lacks a valid bearer token.

    HTTP:    401 Unauthorized
    """

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotAuthorizedError(MurmurError):
    """
    Raised when an authenticated user lacks the ownership right for an action.

    When:    Editing someone else's post or note, deleting someone else's comment.
    HTTP:    403 Forbidden
    """

    def __init__(
        self,
        message: str = "Not authorized",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotConnectedError(NotAuthorizedError):
    """
    Raised when a user likes or comments on a post of someone they share no
    follow edge with.
    """

    def __init__(self, action: str = "interact with", context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=(
                f"You must follow this user or be their follower to {action} their posts"
            ),
            context=context,
        )


class NotFoundError(MurmurError):
    """
    Raised when a requested resource does not exist.

    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource.capitalize()} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource


class TransientStoreError(MurmurError):
    """
    Raised when the store times out or the driver fails.

    What:    The operation could not be completed for reasons unrelated to the
             request's content (connection lost, lock wait exceeded, timeout).
    HTTP:    500 Internal Server Error
    Retry:   Safe for idempotent operations. Toggles should be retried with an
             explicit desired state (`?state=true|false`).

    The message returned to the client is always generic; the driver error is
    only logged.
    """

    def __init__(
        self,
        message: str = "A temporary storage error occurred. Please try again.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
