# exceptions.py

from fastapi import status


class DispatchError(Exception):
    """
    Base class for errors that end a webhook request.

    Each subclass carries the HTTP status code the request is answered with.
    """
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ClientPayloadError(DispatchError):
    status_code = status.HTTP_400_BAD_REQUEST


class AuthenticationError(DispatchError):
    status_code = status.HTTP_401_UNAUTHORIZED


class ExecutionError(DispatchError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
