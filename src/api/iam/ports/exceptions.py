"""Domain exceptions for IAM bounded context.

Exceptions are grouped under a small taxonomy of base classes. The
presentation layer translates each base class into one HTTP status, so
new exceptions only need to pick the right parent.
"""


class IAMError(Exception):
    """Base class for all IAM domain errors."""

    pass


# ---------------------------------------------------------------------------
# Not found (404)
# ---------------------------------------------------------------------------


class NotFoundError(IAMError):
    """Raised when a referenced record does not exist."""

    pass


class UserNotFoundError(NotFoundError):
    """Raised when no user matches the given id, email or provider identity."""

    pass


class ApplicationNotFoundError(NotFoundError):
    """Raised when an application id does not exist."""

    pass


class OrganizationNotFoundError(NotFoundError):
    """Raised when an organization id does not exist."""

    pass


class DeletionNotFoundError(NotFoundError):
    """Raised when a deletion request does not exist."""

    pass


class ConfirmationTokenNotFoundError(NotFoundError):
    """Raised when a sign-up confirmation token is unknown or expired."""

    pass


class RenewalTokenNotFoundError(NotFoundError):
    """Raised when a password reset token is unknown or already used."""

    pass


# ---------------------------------------------------------------------------
# Conflict (400)
# ---------------------------------------------------------------------------


class ConflictError(IAMError):
    """Raised when an operation would violate a uniqueness rule."""

    pass


class DuplicateProviderIdentityError(ConflictError):
    """Raised when a (provider, provider_id) pair is already stored.

    The reconciliation engine treats this as a lost race and re-fetches
    the record created by the concurrent request.
    """

    pass


class EmailAlreadyExistsError(ConflictError):
    """Raised when an email is already used by a user or a pending sign-up."""

    def __init__(self, message: str = "Email exists"):
        super().__init__(message)


class DeletionAlreadyExistsError(ConflictError):
    """Raised when a deletion request already exists for the user."""

    pass


class ApplicationOrphanedError(ConflictError):
    """Raised when an update would leave an application with no owner."""

    def __init__(
        self,
        message: str = "Application must be associated with either a user or an organization",
    ):
        super().__init__(message)


# ---------------------------------------------------------------------------
# Unprocessable (422)
# ---------------------------------------------------------------------------


class UnprocessableError(IAMError):
    """Raised when input is malformed or a required field is missing."""

    pass


class UnsupportedProviderError(UnprocessableError):
    """Raised when an authentication strategy names no known provider."""

    pass


class InvalidRoleError(UnprocessableError):
    """Raised when a role name is not one of the platform roles."""

    pass


class PasswordMismatchError(UnprocessableError):
    """Raised when a password and its confirmation differ."""

    pass


# ---------------------------------------------------------------------------
# Forbidden (403)
# ---------------------------------------------------------------------------


class PermissionDeniedError(IAMError):
    """Raised when the actor's role does not allow the requested mutation."""

    pass


# ---------------------------------------------------------------------------
# Unauthorized (401)
# ---------------------------------------------------------------------------


class UnauthorizedError(IAMError):
    """Raised when the request carries no valid session."""

    pass


class InvalidCredentialsError(UnauthorizedError):
    """Raised when an email/password pair does not match a local user."""

    pass


class TokenRevokedError(UnauthorizedError):
    """Raised when a session token's claims drifted from the stored identity.

    The message never says whether the identity was deleted or changed.
    """

    def __init__(
        self,
        message: str = (
            "Your token is outdated. Please use /auth/login to login "
            "and /auth/generate-token to generate a new token."
        ),
    ):
        super().__init__(message)


# ---------------------------------------------------------------------------
# Upstream failures (500 / 503)
# ---------------------------------------------------------------------------


class UpstreamFailureError(IAMError):
    """Raised when the identity provider or mail service call failed."""

    pass


class UpstreamTimeoutError(UpstreamFailureError):
    """Raised when an upstream call timed out. Safe to retry."""

    pass
