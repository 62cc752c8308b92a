"""
Global error handling middleware.
"""
import logging
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from typing import Callable

from app.domain.exceptions import (
    BoundaryCompletedError,
    BoundaryNotCompletedError,
    InsufficientPointsError,
    InvalidCoordinateError,
    LocationUnavailableError,
    StorageFailureError,
    SyncFailureError,
)
from app.infrastructure.remote_service_client import RemoteServiceError


logger = logging.getLogger(__name__)


# Domain error -> (HTTP status, error label); first match wins
ERROR_STATUS_MAP = (
    (InvalidCoordinateError, status.HTTP_400_BAD_REQUEST, "Invalid coordinate"),
    (InsufficientPointsError, status.HTTP_409_CONFLICT, "Insufficient points"),
    (BoundaryCompletedError, status.HTTP_409_CONFLICT, "Boundary completed"),
    (BoundaryNotCompletedError, status.HTTP_409_CONFLICT, "Boundary not completed"),
    (LocationUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE, "Location unavailable"),
    (SyncFailureError, status.HTTP_502_BAD_GATEWAY, "Sync failure"),
    (StorageFailureError, status.HTTP_507_INSUFFICIENT_STORAGE, "Storage failure"),
)
DOMAIN_ERRORS = tuple(error_type for error_type, _, _ in ERROR_STATUS_MAP)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware.

    Catches unhandled exceptions and returns consistent error responses.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        """
        Process the request and handle any exceptions.

        Args:
            request: The incoming request
            call_next: The next middleware or route handler

        Returns:
            Response object
        """
        try:
            response = await call_next(request)
            return response

        except DOMAIN_ERRORS as e:
            for error_type, status_code, label in ERROR_STATUS_MAP:
                if isinstance(e, error_type):
                    break
            log = logger.error if status_code >= 500 else logger.warning
            log(
                f"{label}: {e.message}",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "status_code": status_code,
                }
            )
            return JSONResponse(
                status_code=status_code,
                content={
                    "error": label,
                    "detail": e.message,
                }
            )

        except RemoteServiceError as e:
            logger.error(
                f"Remote service error: {e.message}",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "status_code": e.status_code,
                }
            )
            return JSONResponse(
                status_code=status.HTTP_502_BAD_GATEWAY,
                content={
                    "error": "Remote service error",
                    "detail": e.message,
                }
            )

        except ValueError as e:
            logger.warning(
                f"Validation error: {str(e)}",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                }
            )
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={
                    "error": "Invalid request",
                    "detail": str(e),
                }
            )

        except Exception as e:
            logger.exception(
                f"Unhandled exception: {str(e)}",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                }
            )
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "error": "Internal server error",
                    "detail": "An unexpected error occurred",
                }
            )
