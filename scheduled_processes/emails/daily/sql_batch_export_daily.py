#!/usr/bin/env python3
"""
Daily email: run every SQL script in a folder and mail the results.

Pipeline (one run per invocation, strictly sequential):
  1. create a timestamped working directory
  2. find `*.sql` files in SQL_EXPORT_SOURCE_DIR (sorted by name)
  3. run each script through the query CLI into `<name>_Result.csv`;
     a script that exits non-zero is logged and skipped
  4. fail if no script succeeded
  5. zip the working directory into SQL_EXPORT_OUTPUT_DIR
  6. email the zip
  7. always delete the working directory (the zip is kept)

Exit code is 0 on success and 1 on any fatal error.

Environment: see config/settings.py. The minimum is
  - SQL_EXPORT_IDENTITY    (connection service name for the query tool)
  - SQL_EXPORT_SOURCE_DIR
  - SQL_EXPORT_OUTPUT_DIR
  - SQL_EXPORT_MAIL_TO     (comma-separated)
  - SQL_EXPORT_SMTP_HOST   (or SQL_EXPORT_MAIL_TRANSPORT=resend + RESEND_API_KEY)
"""

import argparse
import logging
import os
import sys
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Tuple

# Make repo modules importable
REPO_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))
if REPO_ROOT not in sys.path:
    sys.path.append(REPO_ROOT)

from config.settings import ExportSettings, load_settings  # noqa: E402
from modules.archiver import archive_directory  # noqa: E402
from modules.errors import (  # noqa: E402
    BatchExportError,
    NoInputError,
    NothingToArchiveError,
    SetupError,
)
from modules.mailer import send_archive_email  # noqa: E402
from modules.query_runner import QueryToolRunner, result_path_for  # noqa: E402
from modules.result_summary import format_summary_text  # noqa: E402
from modules.run_context import RunContext, working_directory  # noqa: E402

logger = logging.getLogger(__name__)

JOB_NAME = "sql_batch_export_daily"

Notifier = Callable[[ExportSettings, str, str, str], None]


@dataclass
class RunResult:
    archive_path: str
    succeeded: List[str]
    failed: List[Tuple[str, int]]


def discover_scripts(source_dir: str, extension: str = ".sql") -> List[str]:
    """Non-recursive, name-sorted list of script files in `source_dir`."""
    try:
        names = os.listdir(source_dir)
    except OSError as e:
        raise SetupError(f"Cannot read source directory {source_dir}: {e}") from e

    ext = extension.lower()
    scripts = [
        os.path.join(source_dir, name)
        for name in sorted(names)
        if name.lower().endswith(ext) and os.path.isfile(os.path.join(source_dir, name))
    ]
    if not scripts:
        raise NoInputError(f"No {extension} files found in {source_dir}")
    return scripts


def _discard_partial_output(path: str) -> None:
    if not os.path.exists(path):
        return
    try:
        os.remove(path)
    except OSError as e:
        logger.warning(f"Could not remove partial output {path}: {e}")


def process_scripts(ctx: RunContext, scripts: List[str], runner: QueryToolRunner) -> None:
    """Run each script in turn, recording successes and failures on `ctx`."""
    for script in scripts:
        output_path = result_path_for(script, ctx.work_dir)
        code = runner.run_script(script, output_path)

        if code == 0:
            if not os.path.exists(output_path):
                logger.warning(f"{os.path.basename(script)} exited 0 but wrote no output file")
            ctx.succeeded.append(output_path)
            continue

        logger.warning(f"Query script {os.path.basename(script)} failed with exit code {code}; skipping")
        _discard_partial_output(output_path)
        ctx.failed.append((script, code))


def render_template(template: str, now: datetime, timestamp: str) -> str:
    return template.format(
        date=now.date(),
        datetime=f"{now:%Y-%m-%d %H:%M:%S}",
        timestamp=timestamp,
    )


def build_email(settings: ExportSettings, ctx: RunContext, now: datetime) -> Tuple[str, str]:
    subject = render_template(settings.subject, now, ctx.timestamp)
    body = render_template(settings.body, now, ctx.timestamp)
    if settings.include_summary:
        body = body.rstrip() + "\n\n" + format_summary_text(ctx, settings.field_delimiter)
    return subject, body


def run_batch(
    settings: ExportSettings,
    runner: Optional[QueryToolRunner] = None,
    notifier: Optional[Notifier] = None,
    now: Optional[datetime] = None,
) -> RunResult:
    """Execute the whole pipeline once. Raises BatchExportError on fatal errors.

    The working directory is removed on every path out of this function.
    """
    # Bad templates must fail before any script runs, not after archiving
    settings.validate()
    now = now or datetime.now()
    runner = runner or QueryToolRunner(settings.query_tool, settings.identity, settings.field_delimiter)
    notifier = notifier or send_archive_email

    ctx = RunContext.create(
        work_base=settings.work_dir,
        output_dir=settings.output_dir,
        timestamp_format=settings.timestamp_format,
        archive_pattern=settings.archive_pattern,
        now=now,
    )

    try:
        os.makedirs(settings.output_dir, exist_ok=True)
    except OSError as e:
        raise SetupError(f"Cannot create output directory {settings.output_dir}: {e}") from e

    with working_directory(ctx.work_dir):
        scripts = discover_scripts(settings.source_dir, settings.script_extension)
        logger.info(f"Found {len(scripts)} script(s) in {settings.source_dir}")

        process_scripts(ctx, scripts, runner)
        logger.info(f"{len(ctx.succeeded)} succeeded, {len(ctx.failed)} failed")

        if not ctx.succeeded:
            raise NothingToArchiveError(
                f"All {len(scripts)} script(s) failed; nothing to archive"
            )

        archive_directory(ctx.work_dir, ctx.archive_path)

        subject, body = build_email(settings, ctx, now)
        notifier(settings, subject, body, ctx.archive_path)

    return RunResult(
        archive_path=ctx.archive_path,
        succeeded=list(ctx.succeeded),
        failed=list(ctx.failed),
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run SQL scripts and email the zipped CSV results.")
    parser.add_argument("--source-dir", help="Override SQL_EXPORT_SOURCE_DIR")
    parser.add_argument("--output-dir", help="Override SQL_EXPORT_OUTPUT_DIR")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default INFO)")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    logger.info(f"[{JOB_NAME}] Starting...")
    try:
        settings = load_settings({
            "SQL_EXPORT_SOURCE_DIR": args.source_dir,
            "SQL_EXPORT_OUTPUT_DIR": args.output_dir,
        })
        result = run_batch(settings)
    except BatchExportError as e:
        logger.error(f"[{JOB_NAME}] FAILED: {e}")
        return 1
    except Exception:
        logger.exception(f"[{JOB_NAME}] FAILED with unexpected error")
        return 1

    logger.info(f"[{JOB_NAME}] Done. Archive: {result.archive_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
