"""
Product matching side job: looks up a purchasable store product for each
recommendation item. Best-effort; a miss or error for one item only means
that item gets no match.
"""
import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional

from roomwise.core.config import settings
from roomwise.database.models import ProductSearchStatus, Recommendation, RecommendationStatus, Room
from roomwise.services.api_cost import estimate_cost
from roomwise.services.api_usage_service import USAGE_STATUS_FAILED, USAGE_STATUS_SUCCESS, record_usage_safely
from roomwise.services.retry import RetryPolicy, retry_with_policy
from roomwise.services.shopping_search_service import ShoppingSearchClient
from roomwise.workers.base import error_message

logger = logging.getLogger(__name__)

USAGE_OPERATION = "product_search"

SEARCHABLE_CATEGORIES = {
    "furniture",
    "decor",
    "lighting",
    "textiles",
    "fixtures",
    "flooring",
    "organization",
    "plants",
    "artwork",
}

STYLE_ADJECTIVES = [
    "modern", "minimalist", "scandinavian", "industrial", "traditional",
    "bohemian", "coastal", "mid-century", "eclectic", "farmhouse",
    "maximalist", "contemporary", "rustic", "vintage", "elegant",
    "sleek", "cozy", "warm", "cool", "bright", "dark", "light",
]

_ADJECTIVE_PATTERN = re.compile(
    r"(?<![\w-])(" + "|".join(re.escape(adj) for adj in STYLE_ADJECTIVES) + r")(?![\w-])",
    re.IGNORECASE,
)


def build_search_query(title: str, category: str, store_name: Optional[str] = None) -> str:
    """Strip style adjectives from the item title; fall back to the category when nothing is left."""
    store_name = store_name or settings.product_search_store_name
    query = _ADJECTIVE_PATTERN.sub("", (title or "").lower())
    query = re.sub(r"\s+", " ", query).strip()
    return f"{store_name} {query or category}"


def is_store_result(result: Dict[str, Any], domain: str, store_name: str) -> bool:
    return (
        domain in (result.get("product_link") or "")
        or domain in (result.get("link") or "")
        or store_name.lower() in (result.get("source") or "").lower()
    )


class ProductSearchWorker:
    def __init__(
        self,
        db,
        search_client: ShoppingSearchClient,
        retry_policy: RetryPolicy,
        domain: Optional[str] = None,
        store_name: Optional[str] = None,
    ):
        self.db = db
        self.search_client = search_client
        self.retry_policy = retry_policy
        self.domain = domain or settings.product_search_domain
        self.store_name = store_name or settings.product_search_store_name

    async def resolve_product_url(self, result: Dict[str, Any]) -> Optional[str]:
        """Prefer a direct store link; otherwise ask for the product's seller list."""
        for key in ("product_link", "link"):
            link = result.get(key) or ""
            if self.domain in link:
                return link

        product_api = result.get("serpapi_product_api")
        if not product_api:
            return None
        try:
            sellers = await self.search_client.product_sellers(product_api)
        except Exception as e:
            logger.warning(f"Seller lookup failed for '{result.get('title')}': {e}")
            return None

        for seller in sellers:
            link = seller.get("link") or ""
            if self.domain in link:
                return link
        return None

    async def _search(self, query: str, room_id: str, project_id: Optional[str]) -> List[Dict[str, Any]]:
        provider, model = self.search_client.provider, self.search_client.model
        try:
            results = await retry_with_policy(
                lambda: self.search_client.search(query), self.retry_policy, label=f"product search '{query}'"
            )
        except Exception as e:
            await record_usage_safely(
                self.db,
                provider=provider,
                model=model,
                operation=USAGE_OPERATION,
                status=USAGE_STATUS_FAILED,
                estimated_cost_usd=estimate_cost(provider, model),
                room_id=room_id,
                project_id=project_id,
                error_message=error_message(e),
            )
            raise
        await record_usage_safely(
            self.db,
            provider=provider,
            model=model,
            operation=USAGE_OPERATION,
            status=USAGE_STATUS_SUCCESS,
            estimated_cost_usd=estimate_cost(provider, model),
            room_id=room_id,
            project_id=project_id,
        )
        return results

    async def find_match(self, item: Dict[str, Any], room_id: str, project_id: Optional[str]) -> Optional[Dict[str, Any]]:
        query = build_search_query(item.get("title", ""), item.get("category", ""), self.store_name)
        results = await self._search(query, room_id, project_id)

        result = next((r for r in results if is_store_result(r, self.domain, self.store_name)), None)
        if result is None:
            logger.info(f"No {self.store_name} result for item {item.get('id')} ({query})")
            return None

        product_url = await self.resolve_product_url(result)
        image_url = result.get("thumbnail") or ""
        if not product_url or not image_url:
            logger.info(f"Could not resolve a {self.store_name} product for item {item.get('id')}")
            return None

        return {
            "name": result.get("title", ""),
            "price": result.get("price") or "",
            "image_url": image_url,
            "product_url": product_url,
            "fetched_at": datetime.utcnow().isoformat(),
        }

    async def _set_status(self, recommendation: Recommendation, status: ProductSearchStatus) -> None:
        recommendation.product_search_status = status.value
        recommendation.updated_at = datetime.utcnow()
        await self.db.commit()

    async def run(self, recommendation_id: str, attempt: Optional[int] = None) -> Dict[str, int]:
        stats = {"searched": 0, "matched": 0}
        recommendation = await self.db.get(Recommendation, recommendation_id)
        if (
            recommendation is None
            or recommendation.status != RecommendationStatus.COMPLETED.value
            or (attempt is not None and recommendation.attempt != attempt)
            or recommendation.product_search_status != ProductSearchStatus.PENDING.value
        ):
            logger.info(f"[Product search {recommendation_id}] nothing to do")
            return stats

        if not self.search_client.configured:
            logger.error("SERP_API_KEY not configured, skipping product search")
            await self._set_status(recommendation, ProductSearchStatus.COMPLETED)
            return stats

        await self._set_status(recommendation, ProductSearchStatus.SEARCHING)
        run_attempt = recommendation.attempt
        try:
            await self._search_items(recommendation, run_attempt, stats)
        except Exception as e:
            logger.error(f"[Product search {recommendation_id}] batch aborted: {e}", exc_info=True)
            await self._finish_after_error(recommendation, run_attempt)
        return stats

    async def _search_items(self, recommendation: Recommendation, run_attempt: int, stats: Dict[str, int]) -> None:
        room = await self.db.get(Room, recommendation.room_id)
        room_id = recommendation.room_id
        project_id = room.project_id if room else None

        matches = {}
        for item in list(recommendation.items or []):
            if item.get("category") not in SEARCHABLE_CATEGORIES:
                continue
            stats["searched"] += 1
            try:
                match = await self.find_match(item, room_id, project_id)
            except Exception as e:
                logger.error(f"[Product search {recommendation.id}] search failed for item {item.get('id')}: {e}")
                continue
            if match:
                matches[item["id"]] = match

        # Items may have been toggled while searching; merge into the current list
        await self.db.refresh(recommendation)
        if recommendation.attempt != run_attempt or recommendation.status != RecommendationStatus.COMPLETED.value:
            logger.info(f"[Product search {recommendation.id}] recommendation changed during search, discarding")
            return

        recommendation.items = [
            dict(item, product_match=matches[item["id"]]) if item.get("id") in matches else item
            for item in recommendation.items or []
        ]
        stats["matched"] = len(matches)
        await self._set_status(recommendation, ProductSearchStatus.COMPLETED)
        logger.info(f"[Product search {recommendation.id}] matched {stats['matched']}/{stats['searched']} item(s)")

    async def _finish_after_error(self, recommendation: Recommendation, run_attempt: int) -> None:
        """Close out a batch that broke mid-way so the status never stays at searching."""
        await self.db.rollback()
        await self.db.refresh(recommendation)
        if (
            recommendation.attempt == run_attempt
            and recommendation.product_search_status == ProductSearchStatus.SEARCHING.value
        ):
            await self._set_status(recommendation, ProductSearchStatus.COMPLETED)
