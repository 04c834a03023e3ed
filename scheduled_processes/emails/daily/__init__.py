"""
Daily emails.

  - sql_batch_export_daily.py
      • runs the SQL scripts in SQL_EXPORT_SOURCE_DIR and mails the zipped CSV results
"""
