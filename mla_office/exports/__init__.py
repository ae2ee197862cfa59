"""
Async Export Module

Bulk exports of voter data as background jobs. A request creates a pending
job and returns at once; a Celery task then extracts, expands, encodes and
publishes the artifact, recording progress on the job row.
"""
