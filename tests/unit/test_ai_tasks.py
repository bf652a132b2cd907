"""
Unit tests for the Celery task runner
"""
import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from roomwise.tasks import ai_tasks


@pytest.fixture
def task_env():
    """Patch the session factory, engine and provider wiring used by each task"""
    db = MagicMock(name="db")
    session_factory = MagicMock(name="AsyncSessionLocal")
    session_factory.return_value.__aenter__.return_value = db
    engine = MagicMock(name="engine")
    engine.dispose = AsyncMock()
    deps = MagicMock(name="deps")
    with patch.object(ai_tasks, "AsyncSessionLocal", session_factory), patch.object(
        ai_tasks, "engine", engine
    ), patch.object(ai_tasks, "build_worker_dependencies", return_value=deps):
        yield db, engine, deps
    asyncio.set_event_loop(None)


class TestRun:
    @pytest.mark.unit
    def test_returns_job_result_and_disposes_engine(self, task_env):
        db, engine, deps = task_env
        seen = []

        async def job(session, dependencies):
            seen.append((session, dependencies))
            return {"searched": 3, "matched": 1}

        assert ai_tasks._run(job) == {"searched": 3, "matched": 1}
        assert seen == [(db, deps)]
        engine.dispose.assert_awaited_once()

    @pytest.mark.unit
    def test_engine_disposed_when_job_raises(self, task_env):
        """Connections opened on the task's loop are released even if the worker blows up"""
        _, engine, _ = task_env

        async def job(session, dependencies):
            raise RuntimeError("worker crashed")

        with pytest.raises(RuntimeError, match="worker crashed"):
            ai_tasks._run(job)
        engine.dispose.assert_awaited_once()

    @pytest.mark.unit
    def test_each_task_gets_a_fresh_loop(self, task_env):
        _, engine, _ = task_env
        loops = []

        async def job(session, dependencies):
            loops.append(asyncio.get_running_loop())

        ai_tasks._run(job)
        ai_tasks._run(job)

        assert loops[0] is not loops[1]
        assert all(loop.is_closed() for loop in loops)
        assert engine.dispose.await_count == 2
