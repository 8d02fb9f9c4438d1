"""
Client for the setup-code service.

The browser-side setup wizard hands the user a short code; this client
exchanges it for the site's inform URL and identity.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from apadopt.core.collaborators import CodeValidator
from apadopt.core.config import SetupApiConfig
from apadopt.core.errors import InvalidCodeError
from apadopt.core.models import Session

logger = logging.getLogger(__name__)

CONNECT_ERROR_MESSAGE = (
    "Can't connect to the setup service. Check your internet connection."
)


class SetupCodeResponse(BaseModel):
    """Successful lookup payload."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    inform_url: str
    site_id: str
    site_name: str


class SetupCodeFailure(BaseModel):
    """Error payload returned with a 404."""

    error: str
    expired: bool = False


class SetupCodeClient(CodeValidator):
    """
    Validates setup codes over HTTP.

    GET {base_url}/api/setup-code?code=VS-7K2M
    """

    def __init__(
        self,
        config: SetupApiConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize client.

        Args:
            config: Service location and timeout
            transport: Optional httpx transport (for testing)
        """
        self._config = config or SetupApiConfig()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def start(self) -> None:
        """Open the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._config.base_url,
                timeout=self._config.timeout_seconds,
                transport=self._transport,
            )

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def validate_code(self, code: str) -> Session:
        await self.start()
        assert self._client is not None

        logger.info(f"Validating setup code: {code}")

        try:
            response = await self._client.get("/api/setup-code", params={"code": code})
        except (httpx.ConnectError, httpx.TimeoutException) as e:
            logger.warning(f"Setup service unreachable: {e}")
            raise InvalidCodeError(CONNECT_ERROR_MESSAGE) from e
        except httpx.HTTPError as e:
            raise InvalidCodeError(f"Request failed: {e}") from e

        if response.status_code == 200:
            data = self._parse(response, SetupCodeResponse)
            logger.info(
                f"Setup code valid - site: {data.site_name}, inform URL: {data.inform_url}"
            )
            return Session(
                inform_endpoint=data.inform_url,
                site_id=data.site_id,
                site_name=data.site_name,
            )

        if response.status_code == 404:
            failure = self._parse(response, SetupCodeFailure)
            raise InvalidCodeError(failure.error, expired=failure.expired)

        raise InvalidCodeError(f"Unexpected response: {response.status_code}")

    @staticmethod
    def _parse(response: httpx.Response, model: type[BaseModel]) -> Any:
        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise InvalidCodeError(f"Failed to parse response: {e}") from e
