"""
Unit tests for the job record state machine
"""
from datetime import datetime, timedelta

import pytest

from roomwise.core.exceptions import InvalidTransitionError, JobSchedulingError
from roomwise.database.models import Analysis, Recommendation, Visualization
from roomwise.services import job_records
from roomwise.services.job_queue import InMemoryJobQueue


class BrokenQueue(InMemoryJobQueue):
    def enqueue(self, task_name, **kwargs):
        raise ConnectionError("broker unreachable")


@pytest.fixture
async def analysis(db_session, make_project, make_room):
    project = await make_project()
    room = await make_room(project)
    record = Analysis(room_id=room.id, photo_storage_ids=[room.photos[0]["storage_id"]], status="pending", attempt=1)
    db_session.add(record)
    await db_session.commit()
    return record


class TestTransitions:
    @pytest.mark.unit
    async def test_happy_path(self, db_session, analysis):
        """pending -> processing -> completed stores results and clears error"""
        await job_records.mark_in_progress(db_session, job_records.ANALYSIS, analysis)
        assert analysis.status == "processing"

        await job_records.complete(db_session, job_records.ANALYSIS, analysis, results={"style": {"detected": "Boho"}})

        assert analysis.status == "completed"
        assert analysis.results == {"style": {"detected": "Boho"}}
        assert analysis.error is None
        assert analysis.completed_at is not None

    @pytest.mark.unit
    async def test_cannot_complete_from_pending(self, db_session, analysis):
        """Completion must go through the in-progress state"""
        with pytest.raises(InvalidTransitionError):
            await job_records.complete(db_session, job_records.ANALYSIS, analysis, results={"style": {}})

    @pytest.mark.unit
    async def test_cannot_complete_with_empty_result(self, db_session, analysis):
        await job_records.mark_in_progress(db_session, job_records.ANALYSIS, analysis)
        with pytest.raises(ValueError):
            await job_records.complete(db_session, job_records.ANALYSIS, analysis, results=None)

    @pytest.mark.unit
    async def test_fail_clears_results(self, db_session, analysis):
        await job_records.mark_in_progress(db_session, job_records.ANALYSIS, analysis)
        await job_records.fail(db_session, job_records.ANALYSIS, analysis, "Failed to get image URLs")

        assert analysis.status == "failed"
        assert analysis.error == "Failed to get image URLs"
        assert analysis.results is None

    @pytest.mark.unit
    async def test_terminal_states_are_final(self, db_session, analysis):
        await job_records.mark_in_progress(db_session, job_records.ANALYSIS, analysis)
        await job_records.fail(db_session, job_records.ANALYSIS, analysis, "boom")
        with pytest.raises(InvalidTransitionError):
            await job_records.mark_in_progress(db_session, job_records.ANALYSIS, analysis)

    @pytest.mark.unit
    def test_recommendation_starts_generating(self):
        assert job_records.RECOMMENDATION.initial == "generating"
        assert job_records.RECOMMENDATION.active_states == frozenset({"generating"})
        assert job_records.VISUALIZATION.active_states == frozenset({"queued", "processing"})


class TestRegeneration:
    @pytest.mark.unit
    def test_reset_bumps_attempt(self):
        record = Recommendation(status="failed", items=[{"id": "a"}], summary="x", error="boom", attempt=1)
        job_records.reset_for_regeneration(job_records.RECOMMENDATION, record)

        assert record.status == "generating"
        assert record.items == []
        assert record.summary is None
        assert record.error is None
        assert record.attempt == 2

    @pytest.mark.unit
    def test_stale_detection(self):
        now = datetime(2026, 3, 1, 12, 0)
        record = Visualization(status="processing", updated_at=now - timedelta(minutes=20))

        assert job_records.is_stale(job_records.VISUALIZATION, record, timedelta(minutes=15), now)
        assert job_records.can_regenerate(job_records.VISUALIZATION, record, timedelta(minutes=15), now)
        assert not job_records.can_regenerate(job_records.VISUALIZATION, record, timedelta(minutes=30), now)

    @pytest.mark.unit
    def test_should_process_checks_attempt_and_state(self):
        record = Visualization(status="queued", attempt=2)
        assert job_records.should_process(job_records.VISUALIZATION, record, 2)
        assert not job_records.should_process(job_records.VISUALIZATION, record, 1)
        assert not job_records.should_process(job_records.VISUALIZATION, None, 1)
        record.status = "processing"
        assert not job_records.should_process(job_records.VISUALIZATION, record, 2)


class TestSchedule:
    @pytest.mark.unit
    async def test_enqueues_with_attempt(self, db_session, analysis):
        queue = InMemoryJobQueue()
        await job_records.schedule(
            db_session, queue, job_records.ANALYSIS, analysis, "roomwise.tasks.analyze_room", analysis_id=analysis.id
        )
        assert queue.of("roomwise.tasks.analyze_room") == [{"attempt": 1, "analysis_id": analysis.id}]

    @pytest.mark.unit
    async def test_enqueue_failure_fails_record(self, db_session, analysis):
        """A record whose worker cannot be enqueued ends up failed"""
        with pytest.raises(JobSchedulingError):
            await job_records.schedule(
                db_session, BrokenQueue(), job_records.ANALYSIS, analysis, "roomwise.tasks.analyze_room"
            )
        assert analysis.status == "failed"
        assert analysis.error == "Failed to schedule background job"
