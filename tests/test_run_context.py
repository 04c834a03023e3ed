import logging
import os
from datetime import datetime

import pytest

from modules import run_context
from modules.errors import SetupError
from modules.run_context import RunContext, working_directory


def test_create_derives_paths_from_timestamp():
    ctx = RunContext.create(
        work_base="/tmp/work",
        output_dir="/tmp/out",
        timestamp_format="%Y%m%d_%H%M%S",
        archive_pattern="results_{timestamp}.zip",
        now=datetime(2026, 10, 17, 7, 5, 9),
    )
    assert ctx.timestamp == "20261017_070509"
    assert ctx.work_dir == os.path.join("/tmp/work", "run_20261017_070509")
    assert ctx.archive_path == os.path.join("/tmp/out", "results_20261017_070509.zip")
    assert ctx.succeeded == [] and ctx.failed == []


def test_directory_removed_after_block(tmp_path):
    path = tmp_path / "run_1"
    with working_directory(str(path)):
        (path / "a_Result.csv").write_text("x\n")
        assert path.is_dir()
    assert not path.exists()


def test_directory_removed_when_block_raises(tmp_path):
    path = tmp_path / "run_1"
    with pytest.raises(ValueError):
        with working_directory(str(path)):
            (path / "a_Result.csv").write_text("x\n")
            raise ValueError("boom")
    assert not path.exists()


def test_existing_directory_is_setup_error_and_untouched(tmp_path):
    path = tmp_path / "run_1"
    path.mkdir()
    (path / "keep.csv").write_text("x\n")

    with pytest.raises(SetupError):
        with working_directory(str(path)):
            pass

    assert (path / "keep.csv").exists()


def test_cleanup_failure_is_logged_not_raised(tmp_path, monkeypatch, caplog):
    path = tmp_path / "run_1"

    def fail_rmtree(p):
        raise PermissionError("read-only filesystem")

    monkeypatch.setattr(run_context.shutil, "rmtree", fail_rmtree)

    with caplog.at_level(logging.ERROR):
        with working_directory(str(path)):
            pass

    assert any("read-only filesystem" in r.getMessage() for r in caplog.records)
