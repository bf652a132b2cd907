"""
Explicitly constructed provider clients handed to each worker run
"""
from dataclasses import dataclass

from roomwise.core.config import settings
from roomwise.services.chatgpt_service import ChatCompletionClient
from roomwise.services.google_ai_service import ImageGenerationClient
from roomwise.services.job_queue import CeleryJobQueue, JobQueue
from roomwise.services.retry import RetryPolicy
from roomwise.services.shopping_search_service import ShoppingSearchClient
from roomwise.services.storage_service import ObjectStorage, RemoteImageFetcher, get_storage


@dataclass
class WorkerDependencies:
    chat_client: ChatCompletionClient
    image_client: ImageGenerationClient
    search_client: ShoppingSearchClient
    storage: ObjectStorage
    fetcher: RemoteImageFetcher
    queue: JobQueue
    ai_retry: RetryPolicy
    search_retry: RetryPolicy


def build_worker_dependencies() -> WorkerDependencies:
    """Build a fresh set of clients from settings for one task invocation."""
    return WorkerDependencies(
        chat_client=ChatCompletionClient(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            timeout=settings.openai_timeout,
        ),
        image_client=ImageGenerationClient(
            api_key=settings.google_ai_api_key,
            model=settings.google_image_model,
        ),
        search_client=ShoppingSearchClient(
            api_key=settings.serp_api_key,
            base_url=settings.serp_api_url,
            num_results=settings.product_search_results,
            timeout=settings.http_timeout_seconds,
        ),
        storage=get_storage(),
        fetcher=RemoteImageFetcher(timeout=settings.http_timeout_seconds),
        queue=CeleryJobQueue(),
        ai_retry=RetryPolicy(
            max_retries=settings.ai_max_retries,
            base_delay=settings.ai_retry_base_delay,
            max_delay=settings.ai_retry_max_delay,
        ),
        search_retry=RetryPolicy(
            max_retries=settings.search_max_retries,
            base_delay=settings.search_retry_base_delay,
            max_delay=settings.search_retry_max_delay,
        ),
    )
