"""Identity resolution exceptions."""

from fastapi import HTTPException, status


class AuthenticationError(HTTPException):
    """Base authentication error."""

    def __init__(self, detail: str = "Authentication failed") -> None:
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class MissingUserError(AuthenticationError):
    """No caller identity was forwarded with the request."""

    def __init__(self) -> None:
        super().__init__(detail="Missing X-User-Id header")


class InvalidUserIdError(AuthenticationError):
    """The forwarded identity is not a valid user id."""

    def __init__(self) -> None:
        super().__init__(detail="X-User-Id header is not a valid UUID")


class UnknownAuthProviderError(HTTPException):
    """AUTH_PROVIDER is set to something we do not support."""

    def __init__(self, provider: str) -> None:
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Authentication provider '{provider}' is not supported",
        )
