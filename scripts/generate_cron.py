#!/usr/bin/env python3
"""
generate_cron.py
----------------

Prints the recommended crontab entries for the scheduled jobs in this repo.
The schedule of the daily export can be changed with SQL_EXPORT_CRON_SCHEDULE
(standard 5-field cron syntax, default: every day at 07:00).
"""

import os
from typing import List

DEFAULT_SCHEDULE = "0 7 * * *"
JOB_SCRIPT = "scheduled_processes/emails/daily/sql_batch_export_daily.py"
JOB_LOG = "logs/sql_batch_export.log"


def cron_lines(repo_root: str, schedule: str = DEFAULT_SCHEDULE, python: str = "/usr/bin/python3") -> List[str]:
    return [
        "# SQL batch export scheduled processes",
        "# Add these lines to your crontab (crontab -e)",
        f"# REPO_ROOT = {repo_root}",
        "",
        "# Daily: run SQL scripts, zip the CSV results and email them",
        f"{schedule} cd {repo_root} && {python} {JOB_SCRIPT} >> {JOB_LOG} 2>&1",
        "",
        "# Note: Ensure the log directory exists:",
        f"#   mkdir -p {os.path.join(repo_root, 'logs')}",
    ]


def main() -> None:
    repo_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    schedule = os.getenv("SQL_EXPORT_CRON_SCHEDULE", DEFAULT_SCHEDULE)
    for line in cron_lines(repo_root, schedule):
        print(line)


if __name__ == "__main__":
    main()
