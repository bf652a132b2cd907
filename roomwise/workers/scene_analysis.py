"""
Analysis worker: runs the vision model over a room's photos
"""
import json
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PayloadValidationError

from roomwise.core.config import settings
from roomwise.core.exceptions import InvalidProviderResponse, StorageError
from roomwise.database.models import Project, Room
from roomwise.schemas.ai_payloads import SceneAnalysisPayload
from roomwise.services import job_records
from roomwise.services.api_cost import estimate_cost
from roomwise.services.api_usage_service import USAGE_STATUS_FAILED, USAGE_STATUS_SUCCESS, record_usage_safely
from roomwise.services.chatgpt_service import ChatCompletionClient
from roomwise.services.prompts import SCENE_ANALYSIS_SYSTEM_PROMPT, scene_analysis_user_prompt
from roomwise.services.retry import RetryPolicy, retry_with_policy
from roomwise.services.storage_service import ObjectStorage
from roomwise.workers.base import JobWorker, error_message

logger = logging.getLogger(__name__)

USAGE_OPERATION = "scene_analysis"


def parse_scene_analysis(content: Optional[str], provider: str = "openai") -> Dict[str, Any]:
    """Parse and validate the model's JSON. The raw text is kept alongside the parsed fields."""
    if not content:
        raise InvalidProviderResponse(provider, "No response from OpenAI")
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise InvalidProviderResponse(provider, f"Malformed JSON in analysis response: {e.msg}") from e
    if not isinstance(data, dict):
        raise InvalidProviderResponse(provider, "Analysis response is not a JSON object")
    try:
        payload = SceneAnalysisPayload.model_validate(data)
    except PayloadValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise InvalidProviderResponse(provider, f"Analysis response is missing or has invalid fields: {fields}") from e

    results = payload.model_dump()
    results["raw_analysis"] = content
    return results


class SceneAnalysisWorker(JobWorker):
    kind = job_records.ANALYSIS

    def __init__(self, db, chat_client: ChatCompletionClient, storage: ObjectStorage, retry_policy: RetryPolicy):
        super().__init__(db)
        self.chat_client = chat_client
        self.storage = storage
        self.retry_policy = retry_policy

    async def _resolve_urls(self, storage_ids: List[str]) -> List[str]:
        urls = []
        for storage_id in storage_ids:
            try:
                url = await self.storage.get_url(storage_id)
            except Exception as e:
                logger.warning(f"Could not resolve photo {storage_id}: {e}")
                continue
            if url:
                urls.append(url)
            else:
                logger.warning(f"No URL for photo {storage_id}, skipping")
        return urls

    async def run(self, analysis_id: str, attempt: Optional[int] = None) -> None:
        analysis = await self.claim(analysis_id, attempt)
        if analysis is None:
            return

        room = await self.db.get(Room, analysis.room_id)
        project = await self.db.get(Project, room.project_id) if room else None
        room_id = analysis.room_id
        project_id = project.id if project else None
        model = self.chat_client.model
        usage = None

        try:
            urls = await self._resolve_urls(list(analysis.photo_storage_ids or []))
            if not urls:
                raise StorageError("Failed to get image URLs")

            style_profile = project.style_profile if project else None
            result = await retry_with_policy(
                lambda: self.chat_client.complete_json(
                    SCENE_ANALYSIS_SYSTEM_PROMPT,
                    scene_analysis_user_prompt(len(urls), style_profile),
                    image_urls=urls,
                    max_tokens=settings.openai_max_tokens_analysis,
                ),
                self.retry_policy,
                label=f"scene analysis {analysis.id}",
            )
            usage = result.usage
            results = parse_scene_analysis(result.content, self.chat_client.provider)
            await job_records.complete(self.db, self.kind, analysis, results=results)
        except Exception as e:
            await self.fail(analysis, e)
            await record_usage_safely(
                self.db,
                provider=self.chat_client.provider,
                model=model,
                operation=USAGE_OPERATION,
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
            operation=USAGE_OPERATION,
            status=USAGE_STATUS_SUCCESS,
            estimated_cost_usd=estimate_cost(self.chat_client.provider, model, usage),
            usage=usage,
            room_id=room_id,
            project_id=project_id,
        )
        logger.info(f"[Analysis {analysis.id}] style detected: {analysis.results['style']['detected']}")
