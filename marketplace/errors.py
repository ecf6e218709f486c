"""Authentication error taxonomy.

Every error carries the HTTP status it maps to and a message that is safe to
show to the client. Unexpected exceptions are not part of this hierarchy; the
route handlers log them and answer with a generic 500.
"""


class AuthError(Exception):
    """Base class for expected authentication failures."""

    status_code = 400
    default_message = "Bad request"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidCredentialsError(AuthError):
    status_code = 401
    default_message = "Invalid credentials"


class InvalidTokenError(AuthError):
    """Bad signature, expired, malformed payload or wrong purpose."""

    status_code = 400
    default_message = "Invalid or expired token"


class UserNotFoundError(AuthError):
    status_code = 404
    default_message = "User not found"


class AlreadyVerifiedError(AuthError):
    status_code = 400
    default_message = "Email is already verified"


class WeakPasswordError(AuthError):
    status_code = 400
    default_message = "Password does not meet the requirements"


class PasswordMismatchError(AuthError):
    status_code = 400
    default_message = "Passwords do not match"


class UsernameTakenError(AuthError):
    status_code = 400
    default_message = "Username already taken"


class EmailTakenError(AuthError):
    status_code = 400
    default_message = "User with this email already exists"


class UnverifiedEmailError(AuthError):
    status_code = 403
    default_message = "Please verify your email before logging in"


class UnauthorizedError(AuthError):
    status_code = 401
    default_message = "Unauthorized"


class ForbiddenError(AuthError):
    status_code = 403
    default_message = "Admin access required"
