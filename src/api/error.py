"""HTTP error mapping

Use cases return Result errors; routes raise ClientError with the status
code that fits the error and the handler renders {"error": {...}}.
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse
from libs.result import Error


class ClientError(Exception):
    def __init__(self, error: Error, status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(error.message)
        self.error = error
        self.status_code = status_code


_CONFLICT_CODES = {"SUBSCRIPTION_CONFLICT", "INVALID_STATE", "RETRY_EXHAUSTED"}


def status_code_for(error: Error) -> int:
    """Map a use case error code onto an HTTP status"""
    if error.code in _CONFLICT_CODES:
        return status.HTTP_409_CONFLICT
    if error.code.endswith("NOT_FOUND"):
        return status.HTTP_404_NOT_FOUND
    return status.HTTP_400_BAD_REQUEST


def raise_for_error(error: Error):
    raise ClientError(error, status_code=status_code_for(error))


async def client_error_handler(request: Request, exc: ClientError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": exc.error.code, "message": exc.error.message}},
    )
