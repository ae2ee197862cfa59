"""
Main Celery Application Configuration

This file sets up the Celery application instance with Redis as broker and
result backend, and discovers the export tasks.
"""

# Third party imports
from celery import Celery

# Import all models to ensure they're registered with SQLAlchemy
# This must happen before any database operations in tasks
import mla_office.users.models
import mla_office.voters.models
import mla_office.exports.models

# Create Celery Instance
app = Celery("mla_office")

# Configure celery from separate config file
app.config_from_object("mla_office.worker.config")

# shared_task proxies resolve against the default app in threads that never
# imported this module, e.g. the threadpool FastAPI runs sync endpoints in
app.set_default()

# Auto discover tasks.py modules
app.autodiscover_tasks(["mla_office.exports"])

if __name__ == "__main__":
    app.start()
