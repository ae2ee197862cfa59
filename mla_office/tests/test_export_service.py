# mla_office/tests/test_export_service.py

import csv
import threading
from datetime import datetime
from io import StringIO
from unittest.mock import MagicMock, patch

import pytest
from celery.exceptions import SoftTimeLimitExceeded, TimeLimitExceeded, WorkerLostError
from celery.signals import task_failure
from sqlalchemy.exc import OperationalError

from mla_office.core.config import settings
from mla_office.exports.exceptions import ExportProcessingError
from mla_office.exports.models import ExportFormat, ExportJob, ExportStatus
from mla_office.exports.repository import ExportJobRepository
from mla_office.exports.schemas import ExportRequest
from mla_office.exports.services import ExportService, selected_columns_from_filters
from mla_office.exports.tasks import process_export_job

NOW = datetime(2024, 2, 1, 10, 30)


@pytest.fixture
def service(db_session, voters, publisher):
    return ExportService(db_session, publisher=publisher)


@pytest.fixture
def progress_log(service):
    """Records every job update the service makes, in order"""
    original = service.repo.update_progress
    calls = []

    def recording(export_id, **kwargs):
        calls.append(kwargs)
        return original(export_id, **kwargs)

    service.repo.update_progress = recording
    return calls


def _create(service, user, export_format=ExportFormat.CSV, filters=None):
    request = ExportRequest(type="voters", format=export_format, filters=filters or {})
    return service.create_export_job(request, user.id)


def _fresh(session_factory, export_id) -> ExportJob:
    db = session_factory()
    try:
        return db.get(ExportJob, export_id)
    finally:
        db.close()


def _run(service, job_id):
    """Run the pipeline the way the Celery task does"""
    try:
        return service.process_export(job_id, now=NOW)
    except Exception as e:
        service.mark_failed(job_id, str(e))
        return None


class TestProcessExport:

    def test_successful_csv_run(self, service, export_user, s3_client):
        job = _create(service, export_user, filters={
            "partNo": "12", "selectedColumns": ["fullName", "mobileNumber", "epicNumber"],
        })

        done = service.process_export(job.id, now=NOW)

        assert done.status == ExportStatus.COMPLETED
        assert done.progress == 100
        assert done.total_records == 2
        assert done.processed_records == 3
        assert done.file_name == "voters_export_2024-02-01_10-30.csv"
        assert done.file_url == "https://files.example.com/exports/voters_export_2024-02-01_10-30.csv"
        assert done.file_size_kb == 0
        assert done.error_message is None
        assert done.completed_at is not None

        body = s3_client.put_object.call_args.kwargs["Body"].decode("utf-8")
        assert list(csv.reader(StringIO(body))) == [
            ["EPIC Number", "Full Name", "Mobile Number"],
            ["ABC1234567", "Asha Devi", "9876500001"],
            ["ABC1234567", "Asha Devi", "9876500002"],
            ["XYZ7654321", "Bharat Kumar", ""],
        ]

    def test_html_report_run(self, service, export_user, s3_client):
        job = _create(service, export_user, ExportFormat.PDF)

        done = service.process_export(job.id, now=NOW)

        assert done.status == ExportStatus.COMPLETED
        assert done.file_name == "voters_export_2024-02-01_10-30.html"
        assert done.file_size_kb >= 1
        assert s3_client.put_object.call_args.kwargs["ContentType"] == "text/html"

    def test_excel_run(self, service, export_user, s3_client):
        job = _create(service, export_user, ExportFormat.EXCEL)

        done = service.process_export(job.id, now=NOW)

        assert done.file_name.endswith(".csv")
        kwargs = s3_client.put_object.call_args.kwargs
        assert kwargs["ContentType"] == "text/csv; charset=utf-8"
        assert kwargs["Body"].startswith(b"\xef\xbb\xbf")

    def test_mobile_columns_excluded(self, service, export_user, s3_client):
        job = _create(service, export_user, filters={"partNo": "12", "selectedColumns": ["fullName", "age"]})
        service.voter_repo = MagicMock(wraps=service.voter_repo)

        done = service.process_export(job.id, now=NOW)

        assert done.processed_records == 2
        service.voter_repo.get_mobile_numbers_by_epic_numbers.assert_not_called()
        body = s3_client.put_object.call_args.kwargs["Body"].decode("utf-8")
        assert body == 'Full Name,Age\n"Asha Devi","34"\n"Bharat Kumar","61"'

    def test_invalid_selection_exports_everything(self, service, export_user):
        job = _create(service, export_user, filters={"selectedColumns": ["bogus"]})

        done = service.process_export(job.id, now=NOW)

        # Asha x2, Bharat x1, Chitra x1
        assert done.processed_records == 4

    def test_checkpoints_in_order(self, service, export_user, progress_log):
        job = _create(service, export_user)

        service.process_export(job.id, now=NOW)

        assert [c.get("progress") for c in progress_log] == [0, 5, 20, 30, 70, 100]
        assert [c.get("status") for c in progress_log] == [
            ExportStatus.PROCESSING, None, None, None, None, ExportStatus.COMPLETED,
        ]
        assert progress_log[1]["total_records"] == 3
        assert progress_log[4]["processed_records"] == 4

    def test_related_lookup_failure(self, service, export_user, session_factory, progress_log):
        """Failure after the record fetch leaves the job failed at 20"""
        job = _create(service, export_user)

        with patch.object(
            service.voter_repo,
            "get_mobile_numbers_by_epic_numbers",
            side_effect=OperationalError("SELECT", {}, Exception("connection lost")),
        ):
            assert _run(service, job.id) is None

        failed = _fresh(session_factory, job.id)
        assert failed.status == ExportStatus.FAILED
        assert failed.progress == 20
        assert "connection lost" in failed.error_message
        assert failed.file_url is None
        assert [c.get("progress") for c in progress_log if "progress" in c] == [0, 5, 20]

    def test_publish_failure(self, service, export_user, session_factory, s3_client):
        from botocore.exceptions import ClientError

        s3_client.put_object.side_effect = ClientError(
            {"Error": {"Code": "500", "Message": "Service unavailable"}}, "PutObject"
        )
        job = _create(service, export_user)

        _run(service, job.id)

        failed = _fresh(session_factory, job.id)
        assert failed.status == ExportStatus.FAILED
        assert failed.progress == 70
        assert "Service unavailable" in failed.error_message

    def test_empty_error_message_falls_back(self, service, export_user, session_factory):
        job = _create(service, export_user)

        with patch.object(service.voter_repo, "count_for_export", side_effect=ExportProcessingError()):
            _run(service, job.id)

        failed = _fresh(session_factory, job.id)
        assert failed.status == ExportStatus.FAILED
        assert failed.progress == 0
        assert failed.error_message == "Unknown error"

    def test_completed_job_is_not_reprocessed(self, service, export_user, session_factory):
        job = _create(service, export_user)
        service.process_export(job.id, now=NOW)

        _run(service, job.id)

        assert _fresh(session_factory, job.id).status == ExportStatus.COMPLETED


class TestScheduleExport:

    def test_queues_task_without_touching_job(self, service, export_user, session_factory):
        job = _create(service, export_user)

        with patch("mla_office.exports.tasks.process_export_job.delay") as delay:
            delay.return_value.id = "task-123"
            service.schedule_export(job.id)

        delay.assert_called_once_with(job.id)
        stored = _fresh(session_factory, job.id)
        assert stored.status == ExportStatus.PENDING
        assert stored.celery_task_id is None

    def test_task_id_recorded_before_job_finishes(
        self, service, export_user, session_factory, eager_celery, wired_background
    ):
        job = _create(service, export_user)

        service.schedule_export(job.id)

        stored = _fresh(session_factory, job.id)
        assert stored.status == ExportStatus.COMPLETED
        assert stored.celery_task_id is not None
        # the completion was the last write to the row
        assert stored.updated_at == stored.completed_at

    def test_dispatch_from_another_thread(
        self, service, export_user, session_factory, eager_celery, wired_background
    ):
        """Request handlers run in a threadpool; dispatch must use the configured app there too"""
        job = _create(service, export_user)
        seen = {}

        def dispatch():
            seen["app"] = process_export_job.app
            service.schedule_export(job.id)

        thread = threading.Thread(target=dispatch)
        thread.start()
        thread.join()

        assert seen["app"] is eager_celery
        assert seen["app"].conf.broker_url == settings.celery_broker
        assert _fresh(session_factory, job.id).status == ExportStatus.COMPLETED

    def test_queue_failure_marks_job_failed(self, service, export_user, session_factory):
        job = _create(service, export_user)

        with patch(
            "mla_office.exports.tasks.process_export_job.delay",
            side_effect=ConnectionError("Redis unavailable"),
        ):
            service.schedule_export(job.id)

        stored = _fresh(session_factory, job.id)
        assert stored.status == ExportStatus.FAILED
        assert stored.progress == 0
        assert stored.error_message == "Failed to schedule export: Redis unavailable"


class TestProcessExportTask:

    @pytest.fixture
    def job(self, db_session, voters, export_user, wired_background):
        return _create(ExportService(db_session), export_user)

    def test_success(self, job, session_factory):
        result = process_export_job(job.id)

        assert result["status"] == "success"
        done = _fresh(session_factory, job.id)
        assert done.status == ExportStatus.COMPLETED
        assert done.file_url

    def test_errors_never_escape(self, job, session_factory):
        with patch(
            "mla_office.exports.services.encode_export",
            side_effect=ValueError("template missing"),
        ):
            result = process_export_job(job.id)

        assert result == {"status": "failed", "export_id": job.id, "message": "template missing"}
        failed = _fresh(session_factory, job.id)
        assert failed.status == ExportStatus.FAILED
        assert failed.progress == 30

    def test_soft_time_limit(self, job, session_factory):
        with patch.object(ExportService, "process_export", side_effect=SoftTimeLimitExceeded()):
            result = process_export_job(job.id)

        assert result["status"] == "failed"
        failed = _fresh(session_factory, job.id)
        assert failed.status == ExportStatus.FAILED
        assert failed.error_message == "Export timed out"

    def test_unknown_job(self, wired_background):
        result = process_export_job("does-not-exist")

        assert result["status"] == "failed"

    def test_records_task_id(self, job, session_factory):
        result = process_export_job.apply(args=[job.id], task_id="task-42")

        assert result.get()["status"] == "success"
        assert _fresh(session_factory, job.id).celery_task_id == "task-42"


class TestTaskFailureSignal:
    """Hard time limits kill the worker child; the parent fails the job."""

    @pytest.fixture
    def running_job(self, db_session, export_user, wired_background):
        service = ExportService(db_session)
        job = _create(service, export_user)
        service.repo.update_progress(job.id, status=ExportStatus.PROCESSING, progress=30)
        return job

    def _signal(self, job_id, exception, sender=None):
        task_failure.send(
            sender=sender or process_export_job._get_current_object(),
            task_id="task-7",
            exception=exception,
            args=[job_id],
            kwargs={},
            traceback=None,
            einfo=None,
        )

    def test_hard_time_limit(self, running_job, session_factory):
        self._signal(running_job.id, TimeLimitExceeded(1800))

        failed = _fresh(session_factory, running_job.id)
        assert failed.status == ExportStatus.FAILED
        assert failed.error_message == "Export timed out"
        assert failed.progress == 30

    def test_lost_worker(self, running_job, session_factory):
        self._signal(running_job.id, WorkerLostError("Worker exited prematurely: signal 9 (SIGKILL)."))

        failed = _fresh(session_factory, running_job.id)
        assert failed.status == ExportStatus.FAILED
        assert "signal 9" in failed.error_message

    def test_other_tasks_ignored(self, running_job, session_factory):
        other = MagicMock()
        other.name = "notifications.send_sms"

        self._signal(running_job.id, TimeLimitExceeded(60), sender=other)

        assert _fresh(session_factory, running_job.id).status == ExportStatus.PROCESSING

    def test_finished_job_untouched(self, running_job, db_session, session_factory):
        ExportJobRepository(db_session).update_progress(
            running_job.id,
            status=ExportStatus.COMPLETED,
            progress=100,
            file_url="https://files.example.com/exports/a.csv",
        )

        self._signal(running_job.id, TimeLimitExceeded(1800))

        assert _fresh(session_factory, running_job.id).status == ExportStatus.COMPLETED


class TestSelectedColumnsFromFilters:

    @pytest.mark.parametrize("filters, expected", [
        (None, []),
        ({}, []),
        ({"selectedColumns": "fullName"}, []),
        ({"selectedColumns": ["fullName", 3, None, "age"]}, ["fullName", "age"]),
    ])
    def test_extraction(self, filters, expected):
        assert selected_columns_from_filters(filters) == expected
