"""
Infrastructure layer: Remote persistence service client with retry logic.
"""
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field
import httpx
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from app.config import settings
from app.domain.models import FarmerRegistration, MapPlot, OfflineInspection
from app.infrastructure.api_constants import APIConstants, RemoteEndpoints


# Pydantic models for API responses
class RemoteUser(BaseModel):
    """User profile returned by the remote login endpoint."""
    id: int
    username: str
    user_type: str = Field(alias="userType")
    role: str
    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")

    class Config:
        populate_by_name = True


class RemoteLoginResponse(BaseModel):
    """Response from the login endpoint."""
    success: bool
    token: Optional[str] = None
    user: Optional[RemoteUser] = None
    message: Optional[str] = None


class PushResponse(BaseModel):
    """Response from a record push endpoint."""
    id: Optional[Any] = None


class RemoteServiceError(Exception):
    """Error returned by, or raised while calling, the remote service."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def is_rejection(self) -> bool:
        """True when the service answered and refused the request (4xx)."""
        return 400 <= self.status_code < 500


class RemoteUnavailableError(RemoteServiceError):
    """The remote service could not be reached."""

    def __init__(self, message: str):
        super().__init__(message, status_code=503)


class RemoteServiceClient:
    """
    Client for the remote persistence service.
    Implements retry logic with exponential backoff.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize the API client with configuration."""
        self.base_url = base_url or settings.remote_api_base_url
        self.api_key = api_key if api_key is not None else settings.remote_api_key
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "accept": APIConstants.CONTENT_TYPE_JSON,
            },
            timeout=timeout or settings.remote_api_timeout,
        )

    async def __aenter__(self) -> "RemoteServiceClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    @retry(
        stop=stop_after_attempt(settings.max_retry_attempts),
        wait=wait_exponential(
            multiplier=settings.retry_backoff_multiplier,
            min=settings.retry_min_wait,
            max=settings.retry_max_wait,
        ),
        retry=retry_if_exception_type((httpx.HTTPStatusError, httpx.RequestError)),
        reraise=True,
    )
    async def _make_request(
        self,
        method: str,
        endpoint: str,
        **kwargs
    ) -> Dict[str, Any]:
        """
        Make an HTTP request with retry logic.

        Server errors (5xx) and transport errors are retried; client
        errors (4xx) are not.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint path
            **kwargs: Additional arguments for the request

        Returns:
            Response data as dictionary

        Raises:
            RemoteServiceError: On a 4xx response or a non-JSON body
            httpx.HTTPStatusError: On a 5xx response after retries
            httpx.RequestError: On a transport error after retries
        """
        try:
            response = await self.client.request(method, endpoint, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            # Retry on server errors (5xx)
            if e.response.status_code >= 500:
                raise
            # Don't retry on client errors (4xx)
            raise RemoteServiceError(
                f"API request failed: {e.response.status_code} - {e.response.text}",
                status_code=e.response.status_code,
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            # 2xx with a body that is not JSON, e.g. a captive portal page
            raise RemoteServiceError(
                f"API returned a non-JSON response: {response.status_code} "
                f"{response.headers.get('content-type', 'unknown content type')}",
                status_code=502,
            )

    async def _request(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        """Call _make_request and translate exhausted retries into RemoteServiceError."""
        try:
            return await self._make_request(method, endpoint, **kwargs)
        except httpx.HTTPStatusError as e:
            raise RemoteServiceError(
                f"API request failed: {e.response.status_code} - {e.response.text}",
                status_code=e.response.status_code,
            )
        except httpx.RequestError as e:
            raise RemoteUnavailableError(f"API request error: {str(e)}")

    async def login(self, username: str, password: str, user_type: str) -> RemoteLoginResponse:
        """
        Authenticate against the remote service.

        A 401/403 answer is returned as an unsuccessful response rather
        than raised, carrying the server message when there is one.

        Raises:
            RemoteServiceError: On other failures
        """
        try:
            data = await self._request(
                "POST",
                RemoteEndpoints.LOGIN,
                json={"username": username, "password": password, "userType": user_type},
            )
        except RemoteServiceError as e:
            if e.status_code in (401, 403):
                return RemoteLoginResponse(success=False, message=e.message)
            raise
        return RemoteLoginResponse.model_validate(data)

    async def _push(self, endpoint: str, record: BaseModel) -> PushResponse:
        data = await self._request(
            "POST",
            endpoint,
            json=record.model_dump(mode="json", exclude={"status", "is_offline"}),
        )
        return PushResponse(**data) if isinstance(data, dict) else PushResponse()

    async def push_farm_plot(self, plot: MapPlot) -> PushResponse:
        """Send a locally stored farm plot to the remote service."""
        return await self._push(RemoteEndpoints.FARM_PLOTS, plot)

    async def push_farmer(self, farmer: FarmerRegistration) -> PushResponse:
        """Send a locally stored farmer registration to the remote service."""
        return await self._push(RemoteEndpoints.FARMERS, farmer)

    async def push_inspection(self, inspection: OfflineInspection) -> PushResponse:
        """Send a locally stored inspection to the remote service."""
        return await self._push(RemoteEndpoints.INSPECTIONS, inspection)

    async def push(self, collection: str, record: BaseModel) -> PushResponse:
        """
        Push a record of the named offline collection.

        Raises:
            ValueError: If the collection has no remote counterpart
            RemoteServiceError: If the push fails
        """
        return await self._push(RemoteEndpoints.for_collection(collection), record)
