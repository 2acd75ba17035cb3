"""
Domain errors raised by the services and guards.

Each error is an ``HTTPException`` so it carries its own status code; the
application's exception handlers render all of them as
``{"success": false, "message": ...}``.
"""
from fastapi import HTTPException, status


class ValidationError(HTTPException):
    def __init__(self, detail: str = "Invalid request data"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class AuthenticationError(HTTPException):
    def __init__(self, detail: str = "Not authorized to access this route"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class InvalidCredentialsError(AuthenticationError):
    def __init__(self, detail: str = "Invalid email or password"):
        super().__init__(detail)


class AuthorizationError(HTTPException):
    def __init__(self, detail: str = "Not enough permissions"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NotFoundError(HTTPException):
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class DuplicateEmailError(HTTPException):
    def __init__(self, detail: str = "Email already registered"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class AlreadyBookedError(HTTPException):
    def __init__(self, detail: str = "User already holds an appointment"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class HospitalFullError(HTTPException):
    def __init__(self, detail: str = "Hospital has no remaining capacity"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class HospitalInUseError(HTTPException):
    def __init__(self, detail: str = "Hospital still has appointments"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)

