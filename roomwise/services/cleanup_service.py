"""
Retention cleanup: inactive projects and old failed job records
"""
import logging
from datetime import datetime, timedelta
from typing import Dict, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from roomwise.core.config import settings
from roomwise.database.models import Analysis, Project, Recommendation, Visualization
from roomwise.services import job_records
from roomwise.services.projects_service import cascade_delete_project
from roomwise.services.storage_service import ObjectStorage

logger = logging.getLogger(__name__)


async def cleanup_old_data(db: AsyncSession, storage: ObjectStorage, now: Optional[datetime] = None) -> Dict[str, int]:
    """
    Delete projects untouched for ``inactive_project_retention_days`` and
    failed job records older than ``failed_job_retention_days``.

    Returns how many rows of each kind were removed.
    """
    now = now or datetime.utcnow()
    project_cutoff = now - timedelta(days=settings.inactive_project_retention_days)
    failed_cutoff = now - timedelta(days=settings.failed_job_retention_days)
    stats = {"projects": 0, "analyses": 0, "recommendations": 0, "visualizations": 0}

    result = await db.execute(select(Project).where(Project.updated_at < project_cutoff))
    for project in result.scalars().all():
        await cascade_delete_project(db, storage, project)
        stats["projects"] += 1
    await db.commit()

    failed = await db.execute(
        select(Visualization).where(
            Visualization.status == job_records.FAILED, Visualization.created_at < failed_cutoff
        )
    )
    for visualization in failed.scalars().all():
        storage_id = (visualization.output or {}).get("storage_id")
        if storage_id:
            try:
                await storage.delete(storage_id)
            except Exception as e:
                logger.error(f"[Cleanup] failed to delete output {storage_id}: {e}")
        await db.delete(visualization)
        stats["visualizations"] += 1

    await db.flush()

    # Rows still referenced by a surviving visualization or recommendation are kept
    deleted = await db.execute(
        delete(Recommendation).where(
            Recommendation.status == job_records.FAILED,
            Recommendation.created_at < failed_cutoff,
            Recommendation.id.not_in(
                select(Visualization.recommendation_id).where(Visualization.recommendation_id.is_not(None))
            ),
        )
    )
    stats["recommendations"] = deleted.rowcount or 0

    deleted = await db.execute(
        delete(Analysis).where(
            Analysis.status == job_records.FAILED,
            Analysis.created_at < failed_cutoff,
            Analysis.id.not_in(select(Recommendation.analysis_id)),
        )
    )
    stats["analyses"] = deleted.rowcount or 0

    await db.commit()
    logger.info(
        f"[Cleanup] removed {stats['projects']} projects, {stats['analyses']} analyses, "
        f"{stats['recommendations']} recommendations, {stats['visualizations']} visualizations"
    )
    return stats
