"""
Integration tests for cascade deletes and retention cleanup
"""
from datetime import datetime, timedelta

import pytest
from sqlalchemy import func, select

from roomwise.core.exceptions import AuthorizationError
from roomwise.database.models import Analysis, Project, Recommendation, Room, Visualization
from roomwise.services import projects_service
from roomwise.services.cleanup_service import cleanup_old_data

from tests.conftest import OTHER_USER_ID, USER_ID


async def _count(db, model):
    result = await db.execute(select(func.count()).select_from(model))
    return result.scalar_one()


async def _seed_jobs(db, storage, room, status="completed", created_at=None):
    created_at = created_at or datetime.utcnow()
    photo_id = room.photos[0]["storage_id"]
    analysis = Analysis(
        room_id=room.id, photo_storage_ids=[photo_id], status=status, attempt=1, created_at=created_at
    )
    db.add(analysis)
    await db.flush()
    recommendation = Recommendation(
        room_id=room.id,
        analysis_id=analysis.id,
        tier="quick_wins",
        status=status,
        items=[],
        attempt=1,
        created_at=created_at,
    )
    db.add(recommendation)
    await db.flush()
    output_id = await storage.store(b"rendered", "image/png")
    visualization = Visualization(
        room_id=room.id,
        original_photo_id=photo_id,
        type="full_render",
        input={"prompt": "add a blue rug", "product_image_url": None},
        output={"storage_id": output_id, "url": "http://testserver/x"},
        status=status,
        attempt=1,
        created_at=created_at,
    )
    db.add(visualization)
    await db.commit()
    return analysis, recommendation, visualization, output_id


class TestCascadeDelete:
    @pytest.mark.integration
    async def test_delete_room_removes_jobs_and_blobs(self, db_session, storage, make_project, make_room):
        project = await make_project()
        room = await make_room(project, photo_count=2)
        photo_ids = [p["storage_id"] for p in room.photos]
        *_, output_id = await _seed_jobs(db_session, storage, room)

        await projects_service.delete_room(db_session, storage, USER_ID, room.id)

        for model in (Room, Analysis, Recommendation, Visualization):
            assert await _count(db_session, model) == 0
        for storage_id in photo_ids + [output_id]:
            assert await storage.get_url(storage_id) is None
        assert await _count(db_session, Project) == 1

    @pytest.mark.integration
    async def test_delete_project_cascades(self, db_session, storage, make_project, make_room):
        project = await make_project()
        for _ in range(2):
            room = await make_room(project)
            await _seed_jobs(db_session, storage, room)

        await projects_service.delete_project(db_session, storage, USER_ID, project.id)

        for model in (Project, Room, Analysis, Recommendation, Visualization):
            assert await _count(db_session, model) == 0

    @pytest.mark.integration
    async def test_only_owner_can_delete(self, db_session, storage, make_project, make_room):
        project = await make_project()
        await make_room(project)

        with pytest.raises(AuthorizationError):
            await projects_service.delete_project(db_session, storage, OTHER_USER_ID, project.id)
        assert await _count(db_session, Room) == 1

    @pytest.mark.integration
    async def test_missing_blob_does_not_block_delete(self, db_session, storage, make_project, make_room):
        project = await make_project()
        room = await make_room(project)
        await storage.delete(room.photos[0]["storage_id"])

        await projects_service.delete_room(db_session, storage, USER_ID, room.id)

        assert await _count(db_session, Room) == 0


class TestRetentionCleanup:
    @pytest.mark.integration
    async def test_inactive_projects_are_removed(self, db_session, storage, make_project, make_room):
        now = datetime.utcnow()
        stale = await make_project(name="Old", updated_at=now - timedelta(days=120))
        await make_room(stale)
        fresh = await make_project(name="New")

        stats = await cleanup_old_data(db_session, storage, now=now)

        assert stats["projects"] == 1
        remaining = (await db_session.execute(select(Project.id))).scalars().all()
        assert remaining == [fresh.id]
        assert await _count(db_session, Room) == 0

    @pytest.mark.integration
    async def test_old_failed_jobs_are_removed(self, db_session, storage, make_project, make_room):
        """Failed records past retention go; recent failures and completed records stay"""
        now = datetime.utcnow()
        project = await make_project()
        room = await make_room(project)
        *_, old_output = await _seed_jobs(db_session, storage, room, status="failed", created_at=now - timedelta(days=10))
        await _seed_jobs(db_session, storage, room, status="failed", created_at=now - timedelta(days=1))
        await _seed_jobs(db_session, storage, room, status="completed", created_at=now - timedelta(days=30))

        stats = await cleanup_old_data(db_session, storage, now=now)

        assert stats == {"projects": 0, "analyses": 1, "recommendations": 1, "visualizations": 1}
        assert await _count(db_session, Analysis) == 2
        assert await _count(db_session, Recommendation) == 2
        assert await _count(db_session, Visualization) == 2
        assert await storage.get_url(old_output) is None

    @pytest.mark.integration
    async def test_referenced_failed_analysis_is_kept(self, db_session, storage, make_project, make_room):
        now = datetime.utcnow()
        project = await make_project()
        room = await make_room(project)
        analysis, recommendation, visualization, _ = await _seed_jobs(
            db_session, storage, room, status="failed", created_at=now - timedelta(days=10)
        )
        # A completed recommendation still points at the failed analysis
        recommendation.status = "completed"
        await db_session.delete(visualization)
        await db_session.commit()

        stats = await cleanup_old_data(db_session, storage, now=now)

        assert stats["analyses"] == 0
        assert await _count(db_session, Analysis) == 1
