"""
MLA Office export service.

Background bulk exports of constituency data (voters) to CSV, Excel-friendly
CSV and HTML reports, tracked through durable export jobs.
"""
