"""
Client for the upstream content service that owns records and rendering.
"""

from typing import Optional

import httpx

from shared.errors import ExternalServiceError
from shared.logging import get_logger

from ..caching.callbacks import Sink, await_if_needed
from ..models import (
    ContentIdentifier,
    ContentRecord,
    ContentRecordPayload,
    RenderParameters,
    RequestContext,
    render_params_query,
)


class ContentServiceClient:
    """Loads content records and rendered bodies over HTTP.

    Its bound methods are the record loader and the two render callbacks
    the cache engine is built with.
    """

    def __init__(
        self,
        content_service_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.content_service_url = content_service_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self.logger = get_logger("content_cache.content_client")

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.content_service_url,
            timeout=self.timeout,
            transport=self.transport,
        )

    async def get_record(self, content_id: ContentIdentifier) -> Optional[ContentRecord]:
        """Fetch a content record; None when the content does not exist."""
        try:
            async with self._client() as client:
                response = await client.get(f"/posts/{content_id}")
        except httpx.HTTPError as e:
            self.logger.error("Content service HTTP error", content_id=content_id, error=str(e))
            raise ExternalServiceError("content_service", "record lookup failed", details={"http_error": str(e)})

        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise ExternalServiceError(
                "content_service",
                f"record lookup returned {response.status_code}",
                details={"status_code": response.status_code},
            )

        return ContentRecordPayload.model_validate(response.json()).to_record()

    async def render(self, ctx: RequestContext, params: RenderParameters) -> str:
        """Return the rendered body for the request's content."""
        try:
            async with self._client() as client:
                response = await client.get(
                    f"/posts/{ctx.content_id}/rendered",
                    params=render_params_query(params),
                )
        except httpx.HTTPError as e:
            self.logger.error("Content service HTTP error", content_id=ctx.content_id, error=str(e))
            raise ExternalServiceError("content_service", "render failed", details={"http_error": str(e)})

        if response.status_code != 200:
            raise ExternalServiceError(
                "content_service",
                f"render returned {response.status_code}",
                details={"status_code": response.status_code},
            )
        return response.text

    async def render_stream(self, ctx: RequestContext, params: RenderParameters, sink: Sink) -> None:
        """Stream the rendered body into ``sink`` chunk by chunk."""
        try:
            async with self._client() as client:
                async with client.stream(
                    "GET",
                    f"/posts/{ctx.content_id}/rendered",
                    params=render_params_query(params),
                ) as response:
                    if response.status_code != 200:
                        raise ExternalServiceError(
                            "content_service",
                            f"render returned {response.status_code}",
                            details={"status_code": response.status_code},
                        )
                    async for chunk in response.aiter_text():
                        await await_if_needed(sink(chunk))
        except httpx.HTTPError as e:
            self.logger.error("Content service HTTP error", content_id=ctx.content_id, error=str(e))
            raise ExternalServiceError("content_service", "render failed", details={"http_error": str(e)})
