"""Typed failures raised by the identity and session services and mapped to HTTP by the auth routes."""


class AuthError(Exception):
    """Base for expected authentication/authorization outcomes. Carries a client-safe message."""

    status_code = 400
    default_message = "Authentication failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidCredentialsError(AuthError):
    """Unknown identifier, federated-only account or wrong password; always reported the same way."""

    status_code = 401
    default_message = "Invalid credentials"


class UsernameTakenError(AuthError):
    status_code = 409
    default_message = "Username already taken"


class EmailTakenError(AuthError):
    status_code = 409
    default_message = "User with this email already exists"


class UnauthorizedError(AuthError):
    """No live session bound to an existing user."""

    status_code = 401
    default_message = "Unauthorized"


class ForbiddenError(AuthError):
    """Authenticated, but not the privileged identity."""

    status_code = 403
    default_message = "Admin access only"


class FederatedIdentityError(AuthError):
    """Provider token rejected or identity unusable (e.g. unverified email)."""

    status_code = 401
    default_message = "Invalid identity token"


class FederatedLoginNotConfiguredError(AuthError):
    status_code = 503
    default_message = "Google sign-in is not configured"


class InternalAuthError(AuthError):
    """Persistence or hashing failure. The message is generic; details are logged server-side."""

    status_code = 500
    default_message = "Authentication error"


class CredentialStoreError(InternalAuthError):
    pass


class PasswordHashingError(InternalAuthError):
    pass


class SessionStoreError(InternalAuthError):
    default_message = "Failed to save session"


class IdentityProviderUnavailableError(AuthError):
    status_code = 503
    default_message = "Identity provider is unreachable"
