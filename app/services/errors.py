"""Domain errors raised by the sign-in flow and mapped to HTTP responses by the handlers."""


class AuthError(Exception):
    pass


class InvalidInput(AuthError):
    pass


class InvalidOrExpired(AuthError):
    """No pending code matches the submitted email and code."""


class CodeExpired(InvalidOrExpired):
    """The code matched but its expiry has passed."""


class ResendTooSoon(AuthError):
    pass


class UpstreamFailure(AuthError):
    """The code store or the identity provider failed."""


class ProviderError(Exception):
    """Identity provider request failed or returned an unusable response."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
