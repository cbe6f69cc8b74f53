import asyncio
import logging
from typing import Callable, Optional

from clients.base import ReportService, ServiceError
from config.settings import settings
from core.events import Observable
from core.workflow.poller import Poller, PollOutcome, PollResult
from core.workflow.validation import FileValidationError, validate_report_file
from models.report import DashboardHandoff, ReportFile, ReportType, UploadJob, UploadStatus

logger = logging.getLogger(__name__)

UPLOAD_FAILED_MESSAGE = "Failed to upload file"
PROCESSING_FAILED_MESSAGE = "Report processing failed"
PROCESSING_TIMEOUT_MESSAGE = "Report processing timed out. Please try again."
ANALYSIS_FAILED_MESSAGE = "Failed to analyze report"

class WorkflowStateError(RuntimeError):
    """An operation was invoked from a state that does not allow it."""

class UploadWorkflowController(Observable[UploadJob]):
    """
    Drives one report through: idle -> uploading -> processing (polled) -> ready,
    then analysis and handoff to the dashboard.

    Every backend failure lands the job back in a recoverable state with a
    message in `job.error`; nothing here raises to the caller except misuse
    (calling an operation from the wrong state).
    """

    def __init__(self,
                 service: ReportService,
                 poll_interval_seconds: Optional[float] = None,
                 max_poll_attempts: Optional[int] = None,
                 on_handoff: Optional[Callable[[DashboardHandoff], None]] = None):
        super().__init__()
        self.service = service
        self.poll_interval_seconds = poll_interval_seconds
        self.max_poll_attempts = max_poll_attempts
        self.on_handoff = on_handoff
        self.job = UploadJob()
        self._poller: Optional[Poller] = None
        self._watcher: Optional[asyncio.Task] = None

    def _update(self, **changes) -> None:
        for field, value in changes.items():
            setattr(self.job, field, value)
        logger.debug(f"Upload job -> {self.job.status.value} (file_id={self.job.file_id})")
        self._notify(self.job)

    # --- Upload ---
    async def select_file(self, report_file: ReportFile, report_type: ReportType) -> UploadJob:
        """
        Validates the file, uploads it and starts status polling.
        Returns once the job is `processing` (or back at `idle` on failure);
        use wait_for_processing() to follow polling to its end.
        """
        if self.job.status not in (UploadStatus.idle, UploadStatus.failed):
            raise WorkflowStateError(f"Cannot select a file while {self.job.status.value}")

        try:
            validate_report_file(report_file)
        except FileValidationError as e:
            logger.info(f"Rejected '{report_file.filename}': {e}")
            self._update(status=UploadStatus.idle, error=str(e))
            return self.job

        job = self.job = UploadJob(filename=report_file.filename, report_type=report_type)
        self._update(status=UploadStatus.uploading)

        try:
            file_id = await self.service.upload(
                filename=report_file.filename,
                content=report_file.content,
                content_type=report_file.content_type,
                report_type_id=settings.upload.report_type_ids[report_type.value],
            )
        except ServiceError as e:
            logger.warning(f"Upload of '{report_file.filename}' failed: {e.message}")
            if self.job is not job:
                return self.job
            self._update(status=UploadStatus.idle, error=e.message or UPLOAD_FAILED_MESSAGE)
            return self.job

        if self.job is not job:
            # reset() ran while the upload was in flight
            logger.info(f"Discarding late upload of '{report_file.filename}' (file_id {file_id})")
            return self.job

        if not file_id:
            self._update(status=UploadStatus.idle, error=UPLOAD_FAILED_MESSAGE)
            return self.job

        logger.info(f"Uploaded '{report_file.filename}' as file_id {file_id}")
        self._update(file_id=file_id, poll_attempts=0, status=UploadStatus.processing)
        self._start_polling(file_id)
        return self.job

    # --- Processing ---
    def _start_polling(self, file_id: str) -> None:
        def on_attempt(attempts: int):
            self._update(poll_attempts=attempts)

        self._poller = Poller(
            fetch=lambda: self.service.get_status(file_id),
            interval_seconds=self.poll_interval_seconds,
            max_attempts=self.max_poll_attempts,
            on_attempt=on_attempt,
        )
        self._poller.start()
        self._watcher = asyncio.create_task(self._watch(self._poller))

    async def _watch(self, poller: Poller) -> None:
        result = await poller.wait()
        # a reset() or a newer upload may have replaced this poller meanwhile
        if poller is self._poller:
            self._poller = None
            self._apply_poll_result(result)

    async def wait_for_processing(self) -> UploadJob:
        """Blocks until the current polling run ends and its outcome is applied."""
        if self._watcher is not None:
            await self._watcher
        return self.job

    def _apply_poll_result(self, result: PollResult) -> None:
        if result.outcome == PollOutcome.completed:
            logger.info(f"Report {self.job.file_id} ready after {result.attempts} status checks")
            self._update(status=UploadStatus.ready, error=None)
        elif result.outcome == PollOutcome.failed:
            message = (result.report.error if result.report else None) or PROCESSING_FAILED_MESSAGE
            logger.warning(f"Report {self.job.file_id} failed processing: {message}")
            self._update(status=UploadStatus.idle, file_id=None, error=message)
        elif result.outcome == PollOutcome.timeout:
            self._update(status=UploadStatus.idle, file_id=None, error=PROCESSING_TIMEOUT_MESSAGE)
        # cancelled: whoever cancelled owns the state

    # --- Analysis ---
    async def analyze(self) -> UploadJob:
        if self.job.status != UploadStatus.ready or not self.job.file_id:
            raise WorkflowStateError(f"Cannot analyze while {self.job.status.value}")

        file_id = self.job.file_id
        self._update(is_analyzing=True, error=None)
        try:
            result = await self.service.analyze(file_id)
            error = None
        except ServiceError as e:
            logger.warning(f"Analysis of {file_id} failed: {e.message}")
            result = None
            error = e.message or ANALYSIS_FAILED_MESSAGE

        if self.job.file_id != file_id:
            # reset() ran while the call was in flight
            return self.job

        self._update(is_analyzing=False, analysis_result=result, error=error)
        return self.job

    # --- Exits ---
    def save_and_continue(self) -> DashboardHandoff:
        if not self.job.show_preview:
            raise WorkflowStateError("Nothing analyzed to save")

        handoff = DashboardHandoff(file_id=self.job.file_id, fresh=True)
        if self.on_handoff:
            self.on_handoff(handoff)
        self.reset()
        return handoff

    def cancel(self) -> None:
        """Stops polling; responses still in flight (uploads included) are ignored."""
        if self._poller is not None:
            self._poller.cancel()
            self._poller = None

    def reset(self) -> None:
        self.cancel()
        self.job = UploadJob()
        self._update(status=UploadStatus.idle)
