"""
Email-related scheduled jobs.

Jobs here are small, single-purpose scripts invoked via cron:
  - daily/sql_batch_export_daily.py

Each module defines a `main()` entrypoint and is runnable as a standalone
script.
"""
