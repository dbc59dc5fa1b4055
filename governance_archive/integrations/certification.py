"""
Client for the server-side certification function.

The function turns an upload into a certified copy in the lane bucket and
records it as a verified artifact. It is privileged and idempotent: calling
it twice with ``force`` re-converges on the same artifact.
"""

import logging
from typing import Optional

import httpx

from ..errors import AccessError, CertificationFailure
from ..schemas.certification import CertificationRequest, CertificationResponse

logger = logging.getLogger(__name__)


class CertificationClient:
    """
    HTTP client for the certification function.
    """

    def __init__(
        self,
        functions_url: str,
        api_key: Optional[str] = None,
        function_name: str = "certify-minute-book-entry",
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.functions_url = functions_url.rstrip("/")
        self.function_name = function_name
        headers = {}
        if api_key:
            headers = {"Authorization": f"Bearer {api_key}", "apikey": api_key}
        self.client = client or httpx.AsyncClient(timeout=timeout, headers=headers)

    @classmethod
    def from_settings(cls) -> "CertificationClient":
        from ..config import settings

        if not settings.functions_url:
            raise ValueError("ARCHIVE_FUNCTIONS_URL is not configured")
        return cls(
            settings.functions_url,
            api_key=settings.service_key,
            function_name=settings.certify_function,
            timeout=settings.http_timeout_seconds,
        )

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def certify(self, request: CertificationRequest) -> CertificationResponse:
        """Invoke the certification function once.

        Raises:
            CertificationFailure: the function answered ``ok: false``
            AccessError: transport failure or an unreadable reply
        """
        url = f"{self.functions_url}/{self.function_name}"
        try:
            response = await self.client.post(url, json=request.model_dump())
        except httpx.RequestError as e:
            logger.error(f"Failed to reach certification function: {e}")
            raise AccessError(f"Certification request failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if not isinstance(body, dict):
            code = "ACCESS_DENIED" if response.status_code in (401, 403) else None
            raise AccessError(
                response.text or f"Certification function returned HTTP {response.status_code}",
                code=code,
                status_code=response.status_code,
            )

        result = CertificationResponse.model_validate(body)
        if not result.ok:
            raise CertificationFailure(result.error or "CERTIFICATION_FAILED", details=result.details)
        if response.is_error:
            raise AccessError(
                f"Certification function returned HTTP {response.status_code}",
                status_code=response.status_code,
            )
        if not result.verified_artifact_id:
            raise CertificationFailure("Certification succeeded without a verified artifact id.")
        return result
