"""
Visualization worker: renders the requested change onto a room photo
"""
import logging
from typing import Optional

from roomwise.core.exceptions import ProviderConfigurationError, StorageError
from roomwise.database.models import Room
from roomwise.services import job_records
from roomwise.services.api_cost import estimate_cost
from roomwise.services.api_usage_service import USAGE_STATUS_FAILED, USAGE_STATUS_SUCCESS, record_usage_safely
from roomwise.services.google_ai_service import ImageGenerationClient, InlineImage
from roomwise.services.prompts import visualization_instructions
from roomwise.services.retry import RetryPolicy, retry_with_policy
from roomwise.services.storage_service import ObjectStorage, RemoteImageFetcher
from roomwise.workers.base import JobWorker, error_message

logger = logging.getLogger(__name__)

USAGE_OPERATION = "visualization"


class ImageGenerationWorker(JobWorker):
    kind = job_records.VISUALIZATION

    def __init__(
        self,
        db,
        image_client: ImageGenerationClient,
        storage: ObjectStorage,
        fetcher: RemoteImageFetcher,
        retry_policy: RetryPolicy,
    ):
        super().__init__(db)
        self.image_client = image_client
        self.storage = storage
        self.fetcher = fetcher
        self.retry_policy = retry_policy

    async def _fetch_inline(self, url: str) -> InlineImage:
        data, content_type = await self.fetcher.fetch(url)
        if not data:
            raise StorageError("Fetched image is empty")
        return InlineImage(data=data, mime_type=content_type or "image/jpeg")

    async def _discard_output(self, visualization_id: str, storage_id: Optional[str]) -> None:
        """Remove an image stored before the job failed; nothing else references it."""
        if not storage_id:
            return
        try:
            await self.storage.delete(storage_id)
        except Exception as e:
            logger.error(f"[Visualization {visualization_id}] failed to delete orphaned output {storage_id}: {e}")

    async def run(self, visualization_id: str, attempt: Optional[int] = None) -> None:
        visualization = await self.claim(visualization_id, attempt)
        if visualization is None:
            return

        room = await self.db.get(Room, visualization.room_id)
        room_id = visualization.room_id
        project_id = room.project_id if room else None
        provider = self.image_client.provider
        model = self.image_client.model
        request = dict(visualization.input or {})
        usage = None
        # Cost is only attributed once the provider has actually been called
        api_called = False
        stored_id = None

        try:
            if not self.image_client.configured:
                raise ProviderConfigurationError(provider, "GOOGLE_AI_API_KEY is not configured")

            original_url = await self.storage.get_url(visualization.original_photo_id)
            if not original_url:
                raise StorageError("Failed to get original image URL")
            original = await self._fetch_inline(original_url)

            parts = [
                visualization_instructions(
                    request.get("prompt", ""),
                    visualization.type,
                    has_product_reference=bool(request.get("product_image_url")),
                ),
                original,
            ]
            if request.get("product_image_url"):
                parts.append(await self._fetch_inline(request["product_image_url"]))

            api_called = True
            generated = await retry_with_policy(
                lambda: self.image_client.generate_image(parts),
                self.retry_policy,
                label=f"visualization {visualization.id}",
            )
            usage = generated.usage

            stored_id = await self.storage.store(generated.data, generated.mime_type)
            url = await self.storage.get_url(stored_id)
            if not url:
                raise StorageError("Failed to get storage URL for generated image")

            await job_records.complete(self.db, self.kind, visualization, output={"storage_id": stored_id, "url": url})
        except Exception as e:
            await self.fail(visualization, e)
            await self._discard_output(visualization.id, stored_id)
            await record_usage_safely(
                self.db,
                provider=provider,
                model=model,
                operation=USAGE_OPERATION,
                status=USAGE_STATUS_FAILED,
                estimated_cost_usd=estimate_cost(provider, model, usage) if api_called else 0.0,
                units=1 if api_called else 0,
                usage=usage,
                room_id=room_id,
                project_id=project_id,
                error_message=error_message(e),
            )
            return

        await record_usage_safely(
            self.db,
            provider=provider,
            model=model,
            operation=USAGE_OPERATION,
            status=USAGE_STATUS_SUCCESS,
            estimated_cost_usd=estimate_cost(provider, model, usage),
            units=1,
            usage=usage,
            room_id=room_id,
            project_id=project_id,
        )
        logger.info(f"[Visualization {visualization.id}] stored output {visualization.output['storage_id']}")
