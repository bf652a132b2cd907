"""
Unit tests for product search query building and store matching
"""
import pytest

from roomwise.core.exceptions import ProviderError
from roomwise.services.retry import RetryPolicy
from roomwise.workers.product_search import ProductSearchWorker, build_search_query, is_store_result

from tests.conftest import FakeSearchClient


class TestBuildSearchQuery:
    @pytest.mark.unit
    def test_style_adjectives_are_stripped(self):
        assert build_search_query("Modern Minimalist Floor Lamp", "lighting", "IKEA") == "IKEA floor lamp"

    @pytest.mark.unit
    def test_hyphenated_adjective(self):
        assert build_search_query("Mid-Century Sideboard", "furniture", "IKEA") == "IKEA sideboard"

    @pytest.mark.unit
    def test_adjective_inside_word_is_kept(self):
        assert build_search_query("Lighting strip", "lighting", "IKEA") == "IKEA lighting strip"

    @pytest.mark.unit
    def test_falls_back_to_category(self):
        assert build_search_query("Cozy Warm Rustic", "textiles", "IKEA") == "IKEA textiles"


class TestStoreMatching:
    @pytest.mark.unit
    def test_matches_link_or_source(self):
        assert is_store_result({"product_link": "https://www.ikea.com/us/en/p/1"}, "ikea.com", "IKEA")
        assert is_store_result({"link": "https://google.com", "source": "IKEA US"}, "ikea.com", "IKEA")
        assert not is_store_result({"link": "https://wayfair.com/x", "source": "Wayfair"}, "ikea.com", "IKEA")


class TestResolveProductUrl:
    def _worker(self, client):
        return ProductSearchWorker(None, client, RetryPolicy(0, 0, 0), domain="ikea.com", store_name="IKEA")

    @pytest.mark.unit
    async def test_direct_link_preferred(self):
        worker = self._worker(FakeSearchClient())
        url = await worker.resolve_product_url(
            {"product_link": "https://www.ikea.com/p/lamp", "serpapi_product_api": "https://serpapi.com/x"}
        )
        assert url == "https://www.ikea.com/p/lamp"

    @pytest.mark.unit
    async def test_seller_lookup(self):
        client = FakeSearchClient(
            sellers=[{"name": "Other", "link": "https://other.com/x"}, {"name": "IKEA", "link": "https://ikea.com/p/2"}]
        )
        url = await self._worker(client).resolve_product_url(
            {"link": "https://google.com/shopping", "serpapi_product_api": "https://serpapi.com/api?id=1"}
        )
        assert url == "https://ikea.com/p/2"

    @pytest.mark.unit
    async def test_seller_lookup_failure_is_a_miss(self):
        client = FakeSearchClient()

        async def broken(url):
            raise ProviderError("serpapi", "SerpAPI returned 500", status_code=500)

        client.product_sellers = broken
        url = await self._worker(client).resolve_product_url({"serpapi_product_api": "https://serpapi.com/api?id=1"})
        assert url is None
