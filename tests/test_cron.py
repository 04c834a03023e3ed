from unittest.mock import patch

from scripts import register_cron
from scripts.generate_cron import JOB_SCRIPT, cron_lines
from scripts.register_cron import merge_crontab


def test_cron_lines_contain_job():
    lines = cron_lines("/opt/sql-export", "30 6 * * 1-5")
    job = [l for l in lines if l and not l.startswith("#")]
    assert job == [
        f"30 6 * * 1-5 cd /opt/sql-export && /usr/bin/python3 {JOB_SCRIPT} "
        ">> logs/sql_batch_export.log 2>&1"
    ]


def test_merge_replaces_old_entry_and_keeps_others():
    current = "\n".join([
        "0 1 * * * /usr/local/bin/backup.sh",
        f"0 5 * * * cd /old && /usr/bin/python3 {JOB_SCRIPT} >> old.log 2>&1",
    ])

    merged = merge_crontab(current, cron_lines("/opt/sql-export"))

    assert "backup.sh" in merged
    assert "old.log" not in merged
    assert merged.count(JOB_SCRIPT) == 1
    assert merged.endswith("\n")


def test_merge_twice_does_not_duplicate_header():
    lines = cron_lines("/opt/sql-export")
    once = merge_crontab("0 1 * * * /usr/local/bin/backup.sh\n", lines)
    assert merge_crontab(once, lines) == once


def test_merge_into_empty_crontab():
    lines = cron_lines("/opt/sql-export")
    assert merge_crontab("", lines) == "\n".join(lines).rstrip() + "\n"


@patch("scripts.register_cron.write_crontab")
@patch("scripts.register_cron.read_crontab", return_value="0 1 * * * /usr/local/bin/backup.sh\n")
def test_main_installs_merged_crontab(mock_read, mock_write, monkeypatch):
    monkeypatch.setenv("SQL_EXPORT_CRON_SCHEDULE", "15 5 * * *")

    register_cron.main()

    installed = mock_write.call_args[0][0]
    assert "backup.sh" in installed
    assert f"15 5 * * * cd {register_cron.REPO_ROOT} && /usr/bin/python3 {JOB_SCRIPT}" in installed
