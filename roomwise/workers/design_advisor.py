"""
Recommendation worker: turns a completed analysis into tiered design advice.

Tiered generation and custom questions share the same mechanics; only the
prompt and the number of items kept differ.
"""
import json
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PayloadValidationError

from roomwise.core.config import settings
from roomwise.core.exceptions import InvalidProviderResponse, ValidationError
from roomwise.database.models import Analysis, AnalysisStatus, ProductSearchStatus, Project, RecommendationTier, Room
from roomwise.schemas.ai_payloads import RecommendationPayload
from roomwise.services import job_records
from roomwise.services.api_cost import estimate_cost
from roomwise.services.api_usage_service import USAGE_STATUS_FAILED, USAGE_STATUS_SUCCESS, record_usage_safely
from roomwise.services.chatgpt_service import ChatCompletionClient
from roomwise.services.job_queue import SEARCH_PRODUCTS_TASK, JobQueue
from roomwise.services.prompts import ADVISOR_SYSTEM_PROMPT, TIER_SPECS, build_advisor_context, tier_prompt
from roomwise.services.retry import RetryPolicy, retry_with_policy
from roomwise.workers.base import JobWorker, error_message

logger = logging.getLogger(__name__)


def resolve_photo_storage_id(photos: List[Dict[str, Any]], index: Optional[int]) -> Optional[str]:
    """Map the model's photo index onto a stored photo; missing or out-of-range indexes use photo 0."""
    if not photos:
        return None
    if index is None or index < 0 or index >= len(photos):
        index = 0
    return photos[index].get("storage_id")


def parse_recommendations(content: Optional[str], provider: str = "openai") -> RecommendationPayload:
    if not content:
        raise InvalidProviderResponse(provider, "No response from OpenAI")
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise InvalidProviderResponse(provider, f"Malformed JSON in recommendation response: {e.msg}") from e
    if not isinstance(data, dict):
        raise InvalidProviderResponse(provider, "Recommendation response is not a JSON object")
    try:
        return RecommendationPayload.model_validate(data)
    except PayloadValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise InvalidProviderResponse(provider, f"Recommendation response has invalid fields: {fields}") from e


def build_items(payload: RecommendationPayload, tier: str, photos: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Convert validated items into stored item dicts.

    Items beyond the tier's maximum are dropped. Ids fall back to
    ``{tier}-{index}`` and are made unique within the recommendation.
    """
    spec = TIER_SPECS[tier]
    items = []
    seen = set()
    for index, item in enumerate(payload.items[: spec.max_items]):
        item_id = item.id or f"{tier}-{index}"
        if item_id in seen:
            item_id = f"{tier}-{index}"
        suffix = 1
        while item_id in seen:
            item_id = f"{tier}-{index}-{suffix}"
            suffix += 1
        seen.add(item_id)

        items.append(
            {
                "id": item_id,
                "title": item.title,
                "description": item.description,
                "category": item.category.value,
                "estimated_cost": item.estimated_cost.model_dump(),
                "impact": item.impact.value,
                "difficulty": item.difficulty.value,
                "reasoning": item.reasoning,
                "visualization_prompt": item.visualization_prompt,
                "suggested_photo_storage_id": resolve_photo_storage_id(photos, item.suggested_photo_index),
                "selected": False,
                "product_match": None,
            }
        )

    if len(items) < spec.min_items:
        logger.warning(f"Model returned {len(items)} {tier} item(s), expected at least {spec.min_items}")
    return items


class DesignAdvisorWorker(JobWorker):
    kind = job_records.RECOMMENDATION

    def __init__(self, db, chat_client: ChatCompletionClient, queue: JobQueue, retry_policy: RetryPolicy):
        super().__init__(db)
        self.chat_client = chat_client
        self.queue = queue
        self.retry_policy = retry_policy

    async def _load_context(self, recommendation) -> str:
        analysis = await self.db.get(Analysis, recommendation.analysis_id)
        if analysis is None or analysis.status != AnalysisStatus.COMPLETED.value or not analysis.results:
            raise ValidationError("No completed analysis found for this room")
        room = await self.db.get(Room, recommendation.room_id)
        if room is None:
            raise ValidationError("Room not found")
        project = await self.db.get(Project, room.project_id)

        return build_advisor_context(
            analysis.results,
            room_name=room.name,
            room_type=room.type,
            photos=room.photos or [],
            dimensions=room.dimensions,
            notes=room.notes,
            style_profile=project.style_profile if project else None,
            budget=project.budget if project else None,
            constraints=project.constraints if project else None,
        )

    def _request_product_search(self, recommendation) -> None:
        try:
            self.queue.enqueue(SEARCH_PRODUCTS_TASK, recommendation_id=recommendation.id, attempt=recommendation.attempt)
        except Exception as e:
            logger.warning(f"[Recommendation {recommendation.id}] could not enqueue product search: {e}")

    async def run(self, recommendation_id: str, attempt: Optional[int] = None) -> None:
        recommendation = await self.claim(recommendation_id, attempt)
        if recommendation is None:
            return

        room = await self.db.get(Room, recommendation.room_id)
        room_id = recommendation.room_id
        project_id = room.project_id if room else None
        photos = list(room.photos or []) if room else []
        tier = recommendation.tier
        operation = "custom_question" if tier == RecommendationTier.CUSTOM.value else "recommendations"
        model = self.chat_client.model
        usage = None

        try:
            context = await self._load_context(recommendation)
            prompt = tier_prompt(tier, recommendation.question)
            result = await retry_with_policy(
                lambda: self.chat_client.complete_json(
                    ADVISOR_SYSTEM_PROMPT,
                    f"{context}\n\n{prompt}",
                    max_tokens=settings.openai_max_tokens_recommendations,
                ),
                self.retry_policy,
                label=f"{tier} recommendations {recommendation.id}",
            )
            usage = result.usage
            payload = parse_recommendations(result.content, self.chat_client.provider)
            items = build_items(payload, tier, photos)
            recommendation.product_search_status = ProductSearchStatus.PENDING.value
            await job_records.complete(self.db, self.kind, recommendation, items=items, summary=payload.summary)
        except Exception as e:
            await self.fail(recommendation, e)
            await record_usage_safely(
                self.db,
                provider=self.chat_client.provider,
                model=model,
                operation=operation,
                status=USAGE_STATUS_FAILED,
                estimated_cost_usd=estimate_cost(self.chat_client.provider, model, usage),
                usage=usage,
                room_id=room_id,
                project_id=project_id,
                error_message=error_message(e),
            )
            return

        await record_usage_safely(
            self.db,
            provider=self.chat_client.provider,
            model=model,
            operation=operation,
            status=USAGE_STATUS_SUCCESS,
            estimated_cost_usd=estimate_cost(self.chat_client.provider, model, usage),
            usage=usage,
            room_id=room_id,
            project_id=project_id,
        )
        logger.info(f"[Recommendation {recommendation.id}] saved {len(recommendation.items)} {tier} item(s)")
        self._request_product_search(recommendation)
