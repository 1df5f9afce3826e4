import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional

from fastapi import Request

from timebox.config import Settings
from timebox.core.database import Database
from timebox.models.outlook import SyncStatus
from timebox.services.outlook_service import OutlookService, SyncJob, SyncResult

logger = logging.getLogger(__name__)


def _log_failure(future: Future):
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        logger.error("Failed to record Outlook sync outcome", exc_info=error)


class OutlookSyncQueue:
    """Runs Outlook sync jobs off the request path and records each outcome.

    With ``max_workers=0`` jobs run inline in the calling thread, which is
    what the tests use.
    """

    def __init__(self, database: Database, settings: Settings, max_workers: Optional[int] = None):
        self.database = database
        self.settings = settings
        workers = settings.SYNC_WORKERS if max_workers is None else max_workers
        self._executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="outlook-sync") if workers else None

    def submit(self, job: SyncJob) -> Optional[Future]:
        if self._executor is None:
            try:
                self.run(job)
            except Exception:
                logger.exception("Failed to record Outlook sync outcome")
            return None

        future = self._executor.submit(self.run, job)
        future.add_done_callback(_log_failure)
        return future

    def run(self, job: SyncJob) -> SyncResult:
        db = self.database.session()
        try:
            service = OutlookService(db, self.settings)
            try:
                result = service.run_job(job)
            except Exception as e:
                logger.exception("Outlook %s sync crashed for scheduled time %s", job.action.value, job.scheduled_time_id)
                db.rollback()
                result = SyncResult(SyncStatus.FAILED, error=str(e) or e.__class__.__name__)

            service.record_result(job, result)
            log = logger.warning if result.status == SyncStatus.FAILED else logger.info
            log(
                "Outlook %s sync for task %s / scheduled time %s: %s%s",
                job.action.value,
                job.task_id,
                job.scheduled_time_id,
                result.status.value,
                f" ({result.error})" if result.error else "",
            )
            return result
        finally:
            db.close()

    def shutdown(self, wait: bool = True):
        if self._executor is not None:
            self._executor.shutdown(wait=wait)


def get_sync_queue(request: Request) -> OutlookSyncQueue:
    return request.app.state.sync_queue
