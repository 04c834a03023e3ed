#!/usr/bin/env python3
"""
register_cron.py
----------------

Installs the daily SQL export into the current user's crontab. Any existing
line that runs the export script is replaced; every other entry is kept.

Usage:
  cd <repo_root>
  SQL_EXPORT_CRON_SCHEDULE="30 6 * * *" python3 scripts/register_cron.py
"""

import os
import subprocess
import sys
from typing import List

REPO_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if REPO_ROOT not in sys.path:
    sys.path.append(REPO_ROOT)

from scripts.generate_cron import DEFAULT_SCHEDULE, JOB_SCRIPT, cron_lines  # noqa: E402


def read_crontab() -> str:
    """Current crontab text; empty when the user has none or crontab is absent."""
    try:
        res = subprocess.run(["crontab", "-l"], capture_output=True, text=True, check=False)
    except FileNotFoundError:
        return ""
    return res.stdout if res.returncode == 0 else ""


def merge_crontab(current: str, job_lines: List[str]) -> str:
    """Existing crontab without old export entries, followed by `job_lines`."""
    comments = {line for line in job_lines if line.startswith("#")}
    kept = [
        line for line in current.splitlines()
        if JOB_SCRIPT not in line and line not in comments
    ]
    while kept and not kept[-1].strip():
        kept.pop()
    if kept:
        kept.append("")
    return "\n".join(kept + list(job_lines)).rstrip() + "\n"


def write_crontab(text: str) -> None:
    subprocess.run(["crontab", "-"], input=text, text=True, check=True)


def main() -> None:
    schedule = os.getenv("SQL_EXPORT_CRON_SCHEDULE", DEFAULT_SCHEDULE)
    write_crontab(merge_crontab(read_crontab(), cron_lines(REPO_ROOT, schedule)))
    print(f"Registered {JOB_SCRIPT} ({schedule}) in crontab.")


if __name__ == "__main__":
    main()
