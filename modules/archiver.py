import logging
import os
import zipfile
from typing import List

from modules.errors import ArchiveError

logger = logging.getLogger(__name__)


def archive_directory(source_dir: str, archive_path: str) -> List[str]:
    """Zip every regular file in `source_dir` into `archive_path`.

    Members are stored flat, by base name, in sorted order. An existing file
    at `archive_path` is overwritten; a zip left incomplete by a failure is
    removed.
    """
    started = False
    try:
        names = sorted(
            name for name in os.listdir(source_dir)
            if os.path.isfile(os.path.join(source_dir, name))
        )
        with zipfile.ZipFile(archive_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            started = True
            for name in names:
                zf.write(os.path.join(source_dir, name), arcname=name)
    except (OSError, zipfile.BadZipFile, zipfile.LargeZipFile) as e:
        if started:
            _remove_partial_archive(archive_path)
        raise ArchiveError(f"Failed to create archive {archive_path}: {e}") from e

    logger.info(f"Archived {len(names)} file(s) into {archive_path}")
    return names


def _remove_partial_archive(archive_path: str) -> None:
    try:
        os.remove(archive_path)
    except OSError as e:
        logger.error(f"Could not remove incomplete archive {archive_path}: {e}")
