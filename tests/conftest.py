import os
import zipfile
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

import pytest

from config.settings import ExportSettings
from modules.query_runner import QueryToolRunner


FIXED_NOW = datetime(2026, 10, 17, 7, 0, 0, 123456)


class FakeQueryRunner(QueryToolRunner):
    """Stands in for psql: writes a CSV for each script, or exits non-zero.

    `exit_codes` maps script file name -> exit code (default 0). Failing
    scripts still leave a partial file behind, like a real client would.
    """

    def __init__(self, exit_codes: Optional[Dict[str, int]] = None, rows: int = 10):
        super().__init__("psql", "reporting", ",")
        self.exit_codes = exit_codes or {}
        self.rows = rows
        self.calls: List[List[str]] = []

    def run(self, args: Sequence[str]) -> int:
        self.calls.append(list(args))
        script = next(a.split("=", 1)[1] for a in args if a.startswith("--file="))
        output = next(a.split("=", 1)[1] for a in args if a.startswith("--output="))
        code = self.exit_codes.get(os.path.basename(script), 0)

        with open(output, "w") as f:
            f.write("id,name\n")
            if code == 0:
                for i in range(self.rows):
                    f.write(f"{i},row{i}\n")
        return code


class RecordingNotifier:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.sent: List[Tuple[str, str, str, List[str]]] = []

    def __call__(self, settings, subject, body, attachment_path):
        if self.error is not None:
            raise self.error
        with zipfile.ZipFile(attachment_path) as zf:
            members = zf.namelist()
        self.sent.append((subject, body, attachment_path, members))


@pytest.fixture
def source_dir(tmp_path):
    path = tmp_path / "sql"
    path.mkdir()
    return path


@pytest.fixture
def settings(tmp_path, source_dir):
    return ExportSettings(
        identity="reporting",
        source_dir=str(source_dir),
        output_dir=str(tmp_path / "out"),
        work_dir=str(tmp_path / "work"),
        recipients=["ops@example.com", "finance@example.com"],
        smtp_host="smtp.example.com",
    )


def work_dirs(settings: ExportSettings) -> List[str]:
    if not os.path.isdir(settings.work_dir):
        return []
    return os.listdir(settings.work_dir)
