"""
Shopping search client (SerpAPI Google Shopping engine) over aiohttp
"""
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

import aiohttp

from roomwise.core.exceptions import (
    InvalidProviderResponse,
    ProviderConfigurationError,
    ProviderError,
    ProviderUnavailable,
)
from roomwise.services.retry import RETRYABLE_STATUS_CODES

logger = logging.getLogger(__name__)

PROVIDER = "serpapi"
ENGINE = "google_shopping"


class ShoppingSearchClient:
    provider = PROVIDER
    model = ENGINE

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://serpapi.com/search.json",
        num_results: int = 10,
        timeout: float = 30.0,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.num_results = num_results
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if not self.configured:
            raise ProviderConfigurationError(PROVIDER, "SERP_API_KEY is not configured")

        async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as session:
            async with session.get(url, params=params) as response:
                if response.status >= 400:
                    error_cls = ProviderUnavailable if response.status in RETRYABLE_STATUS_CODES else ProviderError
                    raise error_cls(PROVIDER, f"SerpAPI returned {response.status}", status_code=response.status)
                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    raise InvalidProviderResponse(PROVIDER, f"SerpAPI returned invalid JSON: {e}") from e

    async def search(self, query: str) -> List[Dict[str, Any]]:
        """Return the ``shopping_results`` list for a free-text query."""
        params = {
            "engine": ENGINE,
            "q": query,
            "api_key": self.api_key,
            "num": str(self.num_results),
        }
        data = await self._get_json(self.base_url, params=params)
        return data.get("shopping_results") or []

    async def product_sellers(self, product_api_url: str) -> List[Dict[str, Any]]:
        """Follow a result's ``serpapi_product_api`` link and return its online sellers."""
        parsed = urlparse(product_api_url)
        query = dict(parse_qsl(parsed.query))
        query["api_key"] = self.api_key
        url = urlunparse(parsed._replace(query=urlencode(query)))

        data = await self._get_json(url)
        sellers = (data.get("sellers_results") or {}).get("online_sellers") or []
        return sellers
