"""Remote image download client."""

from dataclasses import dataclass

import httpx

from item_detection.services.vision import ImageFetcher, ImageFetchError


@dataclass
class HttpxImageFetcher(ImageFetcher):
    """Image fetcher using httpx."""

    http_client: httpx.AsyncClient

    @classmethod
    def create(
        cls, timeout_seconds: float = 30.0, connect_timeout_seconds: float = 10.0
    ) -> "HttpxImageFetcher":
        """Create an image fetcher with a managed httpx session."""
        timeout = httpx.Timeout(timeout_seconds, connect=connect_timeout_seconds)
        return cls(
            http_client=httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        )

    async def fetch_bytes(self, url: str) -> bytes:
        """Download an image and return its bytes."""
        try:
            response = await self.http_client.get(url)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise ImageFetchError(f"Cannot fetch image {url}: {exc}") from exc
        return response.content

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
