"""Thin wrapper around the external query CLI (psql by default).

The job never talks to the database itself: each SQL script is handed to the
native client, which writes its result set straight to a CSV file. The
identity passed in is a connection service name resolved by the client from
pg_service.conf / .pgpass, so no password ever reaches this process.
"""
import logging
import os
import subprocess
from typing import List, Sequence

from modules.errors import SetupError

logger = logging.getLogger(__name__)

RESULT_SUFFIX = "_Result"
RESULT_EXTENSION = ".csv"


def result_path_for(script_path: str, work_dir: str) -> str:
    """`<work_dir>/<script base name>_Result.csv`"""
    base = os.path.splitext(os.path.basename(script_path))[0]
    return os.path.join(work_dir, f"{base}{RESULT_SUFFIX}{RESULT_EXTENSION}")


class QueryToolRunner:
    def __init__(self, executable: str, identity: str, delimiter: str = ","):
        self.executable = executable
        self.identity = identity
        self.delimiter = delimiter

    def build_command(self, script_path: str, output_path: str) -> List[str]:
        return [
            self.executable,
            f"--dbname=service={self.identity}",
            "--no-psqlrc",
            "--no-align",
            "--pset=footer=off",
            f"--field-separator={self.delimiter}",
            # Abort the script on its first failing statement (exit code 3)
            "--set=ON_ERROR_STOP=1",
            f"--file={script_path}",
            f"--output={output_path}",
        ]

    def run(self, args: Sequence[str]) -> int:
        """Run the tool synchronously and return its exit code.

        Output goes to the file named in `args`; stdout/stderr are left
        attached so tool diagnostics land in the job log.
        """
        try:
            proc = subprocess.run(list(args), check=False)
        except OSError as e:
            raise SetupError(f"Cannot launch query tool {args[0]!r}: {e}") from e
        return proc.returncode

    def run_script(self, script_path: str, output_path: str) -> int:
        logger.info(f"Running {os.path.basename(script_path)} -> {os.path.basename(output_path)}")
        return self.run(self.build_command(script_path, output_path))
