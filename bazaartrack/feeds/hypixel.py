"""Hypixel SkyBlock Bazaar feed client."""

import logging
from typing import Any, Optional

import requests

from bazaartrack.errors import FeedUnavailable
from bazaartrack.feeds.base import BaseFeed


DEFAULT_BASE_URL = "https://api.hypixel.net"
BAZAAR_ENDPOINT = "/skyblock/bazaar"


class HypixelFeed(BaseFeed):
    """Reads the public SkyBlock Bazaar endpoint.

    Each product in the response carries a ``product_id`` and a
    ``quick_status`` block; the snapshot maps one to the other.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the client.

        Args:
            api_key: Optional Hypixel API key, sent as the ``key`` parameter.
            base_url: API root URL.
            timeout: Request timeout in seconds.
            session: Optional preconfigured requests session.
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "User-Agent": "BazaarTrack/0.1.0",
            "Accept": "application/json",
        })
        self.logger = logging.getLogger(__name__)

    def fetch(self, endpoint: str, params: Optional[dict] = None) -> dict[str, Any]:
        """GET an API endpoint and return the decoded JSON body.

        Raises:
            FeedUnavailable: On transport errors, non-2xx responses, bodies
                that are not JSON objects, or ``success: false`` replies.
        """
        url = f"{self.base_url}{endpoint}"
        params = dict(params or {})
        if self.api_key:
            params["key"] = self.api_key

        self.logger.info("Fetching %s", url)
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            self.logger.error("Error fetching %s: %s", url, e)
            raise FeedUnavailable(f"Error fetching {url}: {e}") from e
        except ValueError as e:
            raise FeedUnavailable(f"Invalid JSON from {url}: {e}") from e

        if not isinstance(data, dict):
            raise FeedUnavailable(f"Unexpected response shape from {url}")
        if data.get("success") is False:
            cause = data.get("cause", "unknown cause")
            raise FeedUnavailable(f"{url} reported failure: {cause}")
        return data

    def fetch_snapshot(self) -> dict[str, Optional[dict[str, Any]]]:
        """Fetch every bazaar product's quick status, keyed by product id."""
        data = self.fetch(BAZAAR_ENDPOINT)
        products = data.get("products")
        if not isinstance(products, dict):
            raise FeedUnavailable("Bazaar response has no products mapping")

        snapshot: dict[str, Optional[dict[str, Any]]] = {}
        for key, product in products.items():
            # A product without its own id is reported with no status so the
            # collector drops it
            if not isinstance(product, dict) or not product.get("product_id"):
                snapshot[key] = None
                continue
            snapshot[product["product_id"]] = product.get("quick_status")
        return snapshot
