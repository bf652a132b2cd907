"""
Work queue used by request handlers to hand job records to their workers.

A handler's responsibility ends at "record committed + task enqueued"; the
record is observable in its initial state before any worker picks it up.
"""
import logging
from typing import Any, Dict, List, Tuple

logger = logging.getLogger(__name__)

ANALYZE_ROOM_TASK = "roomwise.tasks.analyze_room"
GENERATE_RECOMMENDATIONS_TASK = "roomwise.tasks.generate_recommendations"
GENERATE_VISUALIZATION_TASK = "roomwise.tasks.generate_visualization"
SEARCH_PRODUCTS_TASK = "roomwise.tasks.search_products"
CLEANUP_TASK = "roomwise.tasks.cleanup_old_data"


class JobQueue:
    """Interface: enqueue a named task with JSON-serializable keyword arguments."""

    def enqueue(self, task_name: str, **kwargs: Any) -> str:
        raise NotImplementedError


class CeleryJobQueue(JobQueue):
    def __init__(self, app=None):
        if app is None:
            from roomwise.celery_app import celery_app

            app = celery_app
        self.app = app

    def enqueue(self, task_name: str, **kwargs: Any) -> str:
        result = self.app.send_task(task_name, kwargs=kwargs, countdown=0)
        logger.info(f"Enqueued {task_name} as {result.id}")
        return result.id


class InMemoryJobQueue(JobQueue):
    """Collects enqueued tasks without running them"""

    def __init__(self):
        self.jobs: List[Tuple[str, Dict[str, Any]]] = []

    def enqueue(self, task_name: str, **kwargs: Any) -> str:
        self.jobs.append((task_name, kwargs))
        return f"local-{len(self.jobs)}"

    def of(self, task_name: str) -> List[Dict[str, Any]]:
        return [kwargs for name, kwargs in self.jobs if name == task_name]


def get_job_queue() -> JobQueue:
    """FastAPI dependency"""
    return CeleryJobQueue()
