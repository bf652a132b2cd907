"""
Shared plumbing for job workers.

A worker owns its record from the moment it moves it into the in-progress
state. Anything that goes wrong after that is written to the record as a
failure and never re-raised; there is no caller to receive it.
"""
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from roomwise.services import job_records
from roomwise.services.job_records import JobKind

logger = logging.getLogger(__name__)


def error_message(exc: BaseException) -> str:
    message = getattr(exc, "message", None) or str(exc)
    return message or "Unknown error"


class JobWorker:
    kind: JobKind

    def __init__(self, db: AsyncSession):
        self.db = db

    async def claim(self, record_id: str, attempt: Optional[int]):
        """Load the record and move it into progress, or return None if the message no longer applies."""
        record = await self.db.get(self.kind.model, record_id)
        if not job_records.should_process(self.kind, record, attempt):
            state = record.status if record is not None else "missing"
            logger.info(f"[{self.kind.name} {record_id}] skipping delivery (attempt={attempt}, state={state})")
            return None
        await job_records.mark_in_progress(self.db, self.kind, record)
        return record

    async def fail(self, record, exc: BaseException) -> None:
        logger.error(f"[{self.kind.name} {record.id}] failed: {exc}", exc_info=True)
        # Drop anything half-written before recording the failure
        await self.db.rollback()
        await self.db.refresh(record)
        await job_records.fail(self.db, self.kind, record, error_message(exc))
