"""Invoice image sources.

Storage references (``gs://bucket/path``) and storage gateway URLs are
downloaded here and sent to analysis as bytes. Any other URL is handed to the
analysis service to fetch itself.
"""

import logging
from urllib.parse import quote, urlsplit

import httpx

from invoice_processor.shared.config import Settings
from invoice_processor.shared.errors import UnreachableSource

logger = logging.getLogger(__name__)


def storage_download_url(image_url: str, settings: Settings) -> str | None:
    """Resolve a storage reference to its gateway download URL.

    Args:
        image_url: URL from the inbound job
        settings: Settings with storage gateway host and schemes

    Returns:
        Download URL, or None when the URL is not a storage reference

    Raises:
        UnreachableSource: If the URL cannot be parsed
    """
    try:
        parts = urlsplit(image_url)
        hostname = parts.hostname
    except ValueError as e:
        raise UnreachableSource(f"Invalid image URL: {image_url} ({e})") from e

    if parts.scheme in settings.storage_schemes:
        bucket, _, path = image_url[len(parts.scheme) + 3 :].partition("/")
        if not bucket or not path:
            return image_url
        return (
            f"https://{settings.storage_gateway_host}/v0/b/{bucket}"
            f"/o/{quote(path, safe='')}?alt=media"
        )

    if parts.scheme in ("http", "https") and hostname == settings.storage_gateway_host:
        return image_url

    return None


class ImageFetcher:
    """Downloads invoice images after a reachability check."""

    def __init__(
        self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None
    ) -> None:
        """Initialize fetcher.

        Args:
            settings: Application settings
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.settings = settings
        self._transport = transport

    async def fetch(self, url: str) -> bytes:
        """Download the image at ``url``.

        Raises:
            UnreachableSource: If the URL is invalid, the HEAD check is not 2xx or
                the download fails
        """
        async with httpx.AsyncClient(
            timeout=self.settings.fetch_timeout_seconds,
            transport=self._transport,
            follow_redirects=True,
        ) as client:
            try:
                head = await client.head(url)
                logger.info(f"URL accessibility test: {head.status_code}")
                if not head.is_success:
                    raise UnreachableSource(
                        f"Cannot access storage URL. Status: {head.status_code}. URL: {url}"
                    )

                response = await client.get(url)
                response.raise_for_status()
            except (httpx.HTTPError, httpx.InvalidURL) as e:
                raise UnreachableSource(f"Failed to download {url}: {e}") from e

        logger.info(f"Downloaded {len(response.content)} bytes")
        return response.content
