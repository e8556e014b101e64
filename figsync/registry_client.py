"""FIG registry HTTP client.

One GET per roster kind, with a bounded timeout and a fixed failure
classification. There are no retries here; retry policy belongs to callers.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from figsync.config import FigSyncSettings
from figsync.errors import (
    ImageNotFound,
    ImageTooLarge,
    RateLimited,
    UpstreamFormatError,
    UpstreamTimeout,
    UpstreamUnavailable,
)
from figsync.models import ImageData, PersonKind

logger = logging.getLogger(__name__)

# Timeouts and connections aborted mid-response both map to UpstreamTimeout.
ABORTED_ERRORS = (httpx.TimeoutException, httpx.RemoteProtocolError, httpx.ReadError)

# Fixed query strings per kind; the AER discipline filter is always applied.
QUERY_PARAMS: dict[PersonKind, dict[str, str]] = {
    PersonKind.ATHLETES: {
        "function": "searchLicenses",
        "discipline": "AER",
        "country": "",
        "idlicense": "",
        "lastname": "",
    },
    PersonKind.COACHES: {
        "function": "searchAcademic",
        "discipline": "AER",
        "country": "",
        "id": "",
        "level": "",
        "lastname": "",
        "firstname": "",
    },
    PersonKind.JUDGES: {
        "function": "searchJudges",
        "discipline": "AER",
        "country": "",
        "id": "",
        "category": "",
        "lastname": "",
        "firstname": "",
    },
}


class RegistryClient:
    """Async client for the FIG registry roster and image endpoints.

    Args:
        settings: Service settings (base URL, endpoints, timeout).
        transport: Optional httpx transport, used by tests and the mock
            registry.
    """

    def __init__(
        self,
        settings: FigSyncSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._client = httpx.AsyncClient(
            base_url=settings.registry_base_url,
            timeout=settings.request_timeout_s,
            transport=transport,
            headers={"User-Agent": settings.user_agent},
        )
        self.requests_made = 0

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Rosters
    # ------------------------------------------------------------------

    async def fetch(self, kind: PersonKind) -> list[Any]:
        """Fetch the full raw roster of ``kind``.

        Returns:
            The decoded JSON array.

        Raises:
            UpstreamFormatError: If the body is not a JSON array.
            RateLimited: On HTTP 429.
            UpstreamTimeout: On timeout or aborted connection.
            UpstreamUnavailable: On any other failure.
        """
        path = self._settings.endpoint_for(kind.value)
        logger.info("Fetching %s from FIG registry", kind.value)
        self.requests_made += 1

        try:
            response = await self._client.get(
                path,
                params=QUERY_PARAMS[kind],
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
        except ABORTED_ERRORS as exc:
            logger.error("FIG registry timeout fetching %s: %s", kind.value, exc)
            raise UpstreamTimeout(f"FIG registry timeout fetching {kind.value}") from exc
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.error("FIG registry returned %d for %s", status, kind.value)
            if status == 429:
                raise RateLimited("FIG registry rate limit exceeded") from exc
            raise UpstreamUnavailable(
                f"FIG registry returned HTTP {status} for {kind.value}"
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("FIG registry request failed for %s: %s", kind.value, exc)
            raise UpstreamUnavailable(
                f"Failed to fetch {kind.value} from FIG registry"
            ) from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamFormatError(
                f"FIG registry returned a non-JSON body for {kind.value}"
            ) from exc

        if not isinstance(data, list):
            raise UpstreamFormatError(
                f"FIG registry returned unexpected data format for {kind.value}"
            )

        logger.info("Fetched %d raw %s from FIG registry", len(data), kind.value)
        return data

    async def fetch_athletes(self) -> list[Any]:
        return await self.fetch(PersonKind.ATHLETES)

    async def fetch_coaches(self) -> list[Any]:
        return await self.fetch(PersonKind.COACHES)

    async def fetch_judges(self) -> list[Any]:
        return await self.fetch(PersonKind.JUDGES)

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    async def fetch_image(self, external_id: str) -> ImageData:
        """Fetch a person's picture from the registry image host.

        Raises:
            ImageNotFound: On HTTP 404.
            ImageTooLarge: If the body exceeds ``max_image_bytes``.
            UpstreamFormatError: On an empty body or non-image content type.
            RateLimited, UpstreamTimeout, UpstreamUnavailable: As for rosters.
        """
        url = f"{self._settings.image_base_url}{external_id}"
        try:
            response = await self._client.get(url, headers={"Accept": "image/*"})
            response.raise_for_status()
        except ABORTED_ERRORS as exc:
            raise UpstreamTimeout(f"Image fetch timeout for {external_id}") from exc
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status == 404:
                raise ImageNotFound(f"Image not found for FIG ID {external_id}") from exc
            if status == 429:
                raise RateLimited("FIG image host rate limit exceeded") from exc
            raise UpstreamUnavailable(
                f"FIG image host returned HTTP {status} for {external_id}"
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(f"Failed to fetch image for {external_id}") from exc

        body = response.content
        if not body:
            raise UpstreamFormatError(f"Empty image data received for {external_id}")
        if len(body) > self._settings.max_image_bytes:
            raise ImageTooLarge(
                f"Image for {external_id} is {len(body)} bytes, "
                f"limit is {self._settings.max_image_bytes}"
            )

        content_type = response.headers.get("content-type", "image/jpeg")
        if not content_type.startswith("image/"):
            logger.warning(
                "Non-image content type for FIG ID %s: %s", external_id, content_type
            )
            raise UpstreamFormatError(f"Invalid image format received for {external_id}")

        return ImageData(
            data=body,
            content_type=content_type,
            content_length=len(body),
            last_modified=response.headers.get("last-modified", ""),
            etag=response.headers.get("etag"),
        )
