"""Fatal error kinds for the SQL batch export job.

Every fatal step raises one of these; `main()` maps any of them to exit
code 1. Per-script tool failures are not errors at this level.
"""


class BatchExportError(RuntimeError):
    """Base class for errors that abort the whole run."""


class ConfigError(BatchExportError):
    """Missing or invalid configuration."""


class SetupError(BatchExportError):
    """Working directory, output directory, source directory or query tool unusable."""


class NoInputError(BatchExportError):
    """No query scripts found in the source directory."""


class NothingToArchiveError(BatchExportError):
    """Every query script failed, so there are no results to archive."""


class ArchiveError(BatchExportError):
    pass


class NotificationError(BatchExportError):
    pass
