"""Per-run state and the working directory that lives for exactly one run."""
import contextlib
import logging
import os
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator, List, Tuple

from modules.errors import SetupError

logger = logging.getLogger(__name__)


@dataclass
class RunContext:
    timestamp: str
    work_dir: str
    archive_path: str
    succeeded: List[str] = field(default_factory=list)
    # (script_path, exit_code)
    failed: List[Tuple[str, int]] = field(default_factory=list)

    @classmethod
    def create(
        cls,
        work_base: str,
        output_dir: str,
        timestamp_format: str,
        archive_pattern: str,
        now: datetime,
    ) -> "RunContext":
        """Derive the working directory and archive path from one timestamp."""
        timestamp = now.strftime(timestamp_format)
        work_dir = os.path.join(work_base, f"run_{timestamp}")
        archive_path = os.path.join(output_dir, archive_pattern.format(timestamp=timestamp))
        return cls(timestamp=timestamp, work_dir=work_dir, archive_path=archive_path)


def remove_working_directory(path: str) -> bool:
    """Best-effort recursive delete. Returns False (and logs) on failure."""
    if not os.path.isdir(path):
        return True
    try:
        shutil.rmtree(path)
    except OSError as e:
        logger.error(f"Failed to remove working directory {path}: {e}")
        return False
    logger.info(f"Removed working directory {path}")
    return True


@contextlib.contextmanager
def working_directory(path: str) -> Iterator[str]:
    """Create `path` for the duration of the block and always remove it after.

    The directory must not already exist; two runs sharing a timestamp
    would otherwise write into the same place.
    """
    try:
        os.makedirs(path)
    except OSError as e:
        # Never clean up here: an existing directory belongs to another run
        raise SetupError(f"Cannot create working directory {path}: {e}") from e

    logger.info(f"Created working directory {path}")
    try:
        yield path
    finally:
        remove_working_directory(path)
