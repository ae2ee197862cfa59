"""
Celery configuration object for the export worker.

Loaded with `app.config_from_object("mla_office.worker.config")`.
"""

from mla_office.core.config import settings

broker_url = settings.celery_broker
result_backend = settings.celery_backend

task_serializer = "json"
result_serializer = "json"
accept_content = ["json"]
timezone = "UTC"
enable_utc = True

# Exports are long and memory heavy: one task per worker process at a time,
# acknowledged only once it has finished.
worker_prefetch_multiplier = 1
task_acks_late = True
task_track_started = True
task_soft_time_limit = settings.export_soft_time_limit
task_time_limit = settings.export_time_limit

# Results only hold a short summary; the export job row is the record.
result_expires = 24 * 60 * 60

broker_connection_retry_on_startup = True
broker_connection_max_retries = 10
broker_transport_options = {
    "socket_timeout": 10,
    "socket_connect_timeout": 10,
    "retry_on_timeout": True,
    "health_check_interval": 30,
}

# Logging is configured by mla_office.utils.logger
worker_hijack_root_logger = False
worker_log_color = False
