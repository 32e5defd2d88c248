from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from modsync.core.exceptions import RegistryError
from modsync.core.logging.logger import get_logger

if TYPE_CHECKING:
    from modsync.models import Provider

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

DEFAULT_TIMEOUT = httpx.Timeout(20.0, connect=10.0)


class HttpRegistryClient:
    """Shared plumbing for registry clients backed by ``httpx.AsyncClient``.

    All transport, status and decoding failures surface as :class:`RegistryError`
    so callers only ever handle one error type per provider.
    """

    provider: Provider

    def __init__(
        self,
        *,
        base_url: str,
        headers: dict[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=DEFAULT_TIMEOUT)
        self._base_url = base_url.rstrip("/")
        self._headers = headers or {}

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _request_json(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
    ) -> Any:
        url = f"{self._base_url}{path}"
        try:
            response = await self._client.request(
                method,
                url,
                params=params,
                json=json_body,
                headers=self._headers,
            )
        except httpx.HTTPError as exc:
            raise RegistryError(
                self.provider,
                f"{self.provider.label} request failed",
                details=str(exc) or exc.__class__.__name__,
            ) from exc

        if response.status_code >= 400:
            logger.debug(
                "Registry request returned error status",
                data={
                    "provider": self.provider.value,
                    "url": url,
                    "status": response.status_code,
                },
            )
            raise RegistryError(
                self.provider,
                f"{self.provider.label} API error ({response.status_code})",
                status_code=response.status_code,
                details=response.text[:500],
            )

        try:
            return response.json()
        except ValueError as exc:
            raise RegistryError(
                self.provider,
                f"Failed to parse {self.provider.label} response",
                status_code=response.status_code,
                details=response.text[:500],
            ) from exc

    def _validate(self, model: type[ModelT], payload: Any) -> ModelT:
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            raise RegistryError(
                self.provider,
                f"Unexpected {self.provider.label} payload",
                details=str(exc),
            ) from exc
