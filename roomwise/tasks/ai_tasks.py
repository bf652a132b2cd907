"""
Background tasks for the AI job workers.

Each task runs one worker to completion on a fresh event loop (Celery workers
run in a sync context) with its own DB session and provider clients.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from roomwise.celery_app import celery_app
from roomwise.core.database import AsyncSessionLocal, engine
from roomwise.services.cleanup_service import cleanup_old_data as run_cleanup
from roomwise.services.job_queue import (
    ANALYZE_ROOM_TASK,
    CLEANUP_TASK,
    GENERATE_RECOMMENDATIONS_TASK,
    GENERATE_VISUALIZATION_TASK,
    SEARCH_PRODUCTS_TASK,
)
from roomwise.workers.dependencies import WorkerDependencies, build_worker_dependencies
from roomwise.workers.design_advisor import DesignAdvisorWorker
from roomwise.workers.image_generation import ImageGenerationWorker
from roomwise.workers.product_search import ProductSearchWorker
from roomwise.workers.scene_analysis import SceneAnalysisWorker

logger = logging.getLogger(__name__)


def _run(job: Callable[[Any, WorkerDependencies], Awaitable[Any]]) -> Any:
    async def _main():
        deps = build_worker_dependencies()
        try:
            async with AsyncSessionLocal() as db:
                return await job(db, deps)
        finally:
            # Pooled connections are bound to this loop, which is closed below
            await engine.dispose()

    # Run the async worker in a new event loop
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(_main())
    finally:
        loop.close()


@celery_app.task(bind=True, name=ANALYZE_ROOM_TASK)
def analyze_room(self, analysis_id: str, attempt: Optional[int] = None) -> Dict[str, Any]:
    logger.info(f"Task {self.request.id} analyzing {analysis_id} (attempt {attempt})")
    _run(
        lambda db, deps: SceneAnalysisWorker(db, deps.chat_client, deps.storage, deps.ai_retry).run(
            analysis_id, attempt
        )
    )
    return {"analysis_id": analysis_id}


@celery_app.task(bind=True, name=GENERATE_RECOMMENDATIONS_TASK)
def generate_recommendations(self, recommendation_id: str, attempt: Optional[int] = None) -> Dict[str, Any]:
    logger.info(f"Task {self.request.id} generating recommendation {recommendation_id} (attempt {attempt})")
    _run(
        lambda db, deps: DesignAdvisorWorker(db, deps.chat_client, deps.queue, deps.ai_retry).run(
            recommendation_id, attempt
        )
    )
    return {"recommendation_id": recommendation_id}


@celery_app.task(bind=True, name=GENERATE_VISUALIZATION_TASK)
def generate_visualization(self, visualization_id: str, attempt: Optional[int] = None) -> Dict[str, Any]:
    logger.info(f"Task {self.request.id} rendering visualization {visualization_id} (attempt {attempt})")
    _run(
        lambda db, deps: ImageGenerationWorker(
            db, deps.image_client, deps.storage, deps.fetcher, deps.ai_retry
        ).run(visualization_id, attempt)
    )
    return {"visualization_id": visualization_id}


@celery_app.task(bind=True, name=SEARCH_PRODUCTS_TASK)
def search_products(self, recommendation_id: str, attempt: Optional[int] = None) -> Dict[str, Any]:
    logger.info(f"Task {self.request.id} searching products for {recommendation_id}")
    stats = _run(
        lambda db, deps: ProductSearchWorker(db, deps.search_client, deps.search_retry).run(
            recommendation_id, attempt
        )
    )
    return {"recommendation_id": recommendation_id, **stats}


@celery_app.task(bind=True, name=CLEANUP_TASK)
def cleanup_old_data(self) -> Dict[str, int]:
    logger.info(f"Task {self.request.id} running retention cleanup")
    return _run(lambda db, deps: run_cleanup(db, deps.storage))
