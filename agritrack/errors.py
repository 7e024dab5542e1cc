from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse


class AgriTrackError(Exception):
    """Base class for every error the API reports to its callers.

    ``details`` carries whatever diagnostic text the failing collaborator
    produced (a SQL message, a provider error) as an opaque string.
    """

    code = "INTERNAL_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        error = {"code": self.code}
        if self.details:
            error["details"] = self.details
        return {"success": False, "message": self.message, "error": error}


class InvalidArgument(AgriTrackError):
    code = "INVALID_ARGUMENT"
    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(AgriTrackError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, entity: str, key=None):
        message = f"{entity.capitalize()} not found"
        details = f"{entity} with ID {key} not found" if key is not None else None
        super().__init__(message, details)
        self.entity = entity


class StorageError(AgriTrackError):
    code = "STORAGE_ERROR"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class DependencyError(AgriTrackError):
    code = "DEPENDENCY_ERROR"
    status_code = status.HTTP_502_BAD_GATEWAY


class AuthenticationError(AgriTrackError):
    code = "AUTH_ERROR"
    status_code = status.HTTP_401_UNAUTHORIZED


class PermissionDenied(AgriTrackError):
    code = "FORBIDDEN"
    status_code = status.HTTP_403_FORBIDDEN


async def agritrack_error_handler(request: Request, exc: AgriTrackError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AgriTrackError, agritrack_error_handler)
