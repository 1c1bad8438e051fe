from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse


class BaseAppException(HTTPException):
    """HTTP-aware application error with structured context (ids, counts)."""

    def __init__(self, status_code: int, detail: str, **context: Any):
        super().__init__(status_code=status_code, detail=detail)
        self.context = context

    def __str__(self) -> str:
        return self.detail


class NotFoundError(BaseAppException):
    def __init__(self, detail: str = "Resource not found", **context: Any):
        super().__init__(status.HTTP_404_NOT_FOUND, detail, **context)


class AlreadyExistsError(BaseAppException):
    def __init__(self, detail: str = "Resource already exists", **context: Any):
        super().__init__(status.HTTP_409_CONFLICT, detail, **context)


class InvalidArgumentError(BaseAppException):
    def __init__(self, detail: str = "Invalid argument", **context: Any):
        super().__init__(status.HTTP_400_BAD_REQUEST, detail, **context)


class ConflictError(BaseAppException):
    def __init__(self, detail: str = "Conflict", **context: Any):
        super().__init__(status.HTTP_409_CONFLICT, detail, **context)


async def app_exception_handler(request: Request, exc: BaseAppException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, **exc.context},
        headers=exc.headers,
    )
