"""Central configuration for the SQL batch export job.
Override via environment variables, and fall back to a local JSON secrets
file that is never committed to git.
"""
import os
import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from modules.errors import ConfigError


SMTP_SECURITY_MODES = ("none", "starttls", "ssl")
MAIL_TRANSPORTS = ("smtp", "resend")

DEFAULT_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S_%f"
DEFAULT_ARCHIVE_PATTERN = "sql_results_{timestamp}.zip"
DEFAULT_FROM_EMAIL = "SQL Batch Export <alerts@resend.dev>"
DEFAULT_SUBJECT = "[SQL EXPORT] Query results - {date}"
DEFAULT_BODY = (
    "Attached are the query results generated at {datetime}.\n"
    "Each CSV file corresponds to one SQL script in the source directory."
)


def _load_local_secrets() -> dict:
    """Load optional local secrets from config/local_secrets.json (untracked).

    Shape is a simple key/value mapping, using the same keys as
    environment variables, e.g.:

        {
          "SQL_EXPORT_SMTP_PASSWORD": "…",
          "RESEND_API_KEY": "…"
        }
    """
    path = Path(__file__).with_name("local_secrets.json")
    if not path.exists():
        return {}
    try:
        with path.open("r") as f:
            return json.load(f)
    except (OSError, ValueError):
        # Malformed file: ignore it rather than crash
        return {}


_LOCAL_SECRETS = _load_local_secrets()


def get_secret(name: str, default: str = "") -> str:
    """Return a secret from env or local_secrets.json.

    Priority:
      1. Environment variable `name`
      2. Entry in config/local_secrets.json using the same key
      3. Provided default
    """
    if name in os.environ:
        return os.environ[name]
    return _LOCAL_SECRETS.get(name, default)


@dataclass
class ExportSettings:
    identity: str
    source_dir: str
    output_dir: str
    recipients: List[str]
    work_dir: str = ""
    query_tool: str = "psql"
    script_extension: str = ".sql"
    field_delimiter: str = ","
    timestamp_format: str = DEFAULT_TIMESTAMP_FORMAT
    archive_pattern: str = DEFAULT_ARCHIVE_PATTERN
    from_email: str = DEFAULT_FROM_EMAIL
    subject: str = DEFAULT_SUBJECT
    body: str = DEFAULT_BODY
    include_summary: bool = True
    mail_transport: str = "smtp"
    smtp_host: str = ""
    smtp_port: Optional[int] = None
    smtp_security: str = "none"
    smtp_user: str = ""
    smtp_password: str = field(default="", repr=False)
    resend_api_key: str = field(default="", repr=False)

    def __post_init__(self) -> None:
        if not self.work_dir:
            self.work_dir = self.output_dir

    def validate(self) -> "ExportSettings":
        """Raise ConfigError naming every missing or invalid field."""
        problems: List[str] = []
        if not self.identity:
            problems.append("SQL_EXPORT_IDENTITY is required")
        if not self.source_dir:
            problems.append("SQL_EXPORT_SOURCE_DIR is required")
        if not self.output_dir:
            problems.append("SQL_EXPORT_OUTPUT_DIR is required")
        if not self.recipients:
            problems.append("SQL_EXPORT_MAIL_TO needs at least one recipient")
        if not self.query_tool:
            problems.append("SQL_EXPORT_QUERY_TOOL must not be empty")
        if not self.field_delimiter:
            problems.append("SQL_EXPORT_FIELD_DELIMITER must not be empty")
        if "{timestamp}" not in self.archive_pattern:
            problems.append("SQL_EXPORT_ARCHIVE_PATTERN must contain {timestamp}")
        problems.extend(self._template_problems())

        if self.mail_transport not in MAIL_TRANSPORTS:
            problems.append(
                f"SQL_EXPORT_MAIL_TRANSPORT must be one of {', '.join(MAIL_TRANSPORTS)}"
            )
        elif self.mail_transport == "smtp":
            if not self.smtp_host:
                problems.append("SQL_EXPORT_SMTP_HOST is required for smtp transport")
            if self.smtp_security not in SMTP_SECURITY_MODES:
                problems.append(
                    f"SQL_EXPORT_SMTP_SECURITY must be one of {', '.join(SMTP_SECURITY_MODES)}"
                )
        elif not self.resend_api_key:
            problems.append("RESEND_API_KEY is required for resend transport")

        if problems:
            raise ConfigError("Invalid configuration: " + "; ".join(problems))
        return self

    def _template_problems(self) -> List[str]:
        """Render the timestamp and every template once with sample values."""
        problems: List[str] = []
        sample = datetime(2000, 1, 31, 23, 59, 58, 123456)
        try:
            timestamp = sample.strftime(self.timestamp_format)
        except ValueError as e:
            return [f"SQL_EXPORT_TIMESTAMP_FORMAT is invalid: {e}"]

        # The timestamp names a single working directory level
        separators = [s for s in (os.sep, os.altsep) if s]
        if not timestamp or any(s in timestamp for s in separators):
            problems.append(
                "SQL_EXPORT_TIMESTAMP_FORMAT must render a non-empty value without path separators"
            )

        values = {"date": sample.date(), "datetime": f"{sample:%Y-%m-%d %H:%M:%S}", "timestamp": timestamp}
        templates = [
            ("SQL_EXPORT_ARCHIVE_PATTERN", self.archive_pattern, {"timestamp": timestamp}),
            ("SQL_EXPORT_MAIL_SUBJECT", self.subject, values),
            ("SQL_EXPORT_MAIL_BODY", self.body, values),
        ]
        for name, template, fields in templates:
            try:
                template.format(**fields)
            except (KeyError, IndexError, ValueError) as e:
                problems.append(
                    f"{name} has an unknown or malformed placeholder ({e!r}); "
                    "double literal braces as {{ }}"
                )
        return problems


def _split_recipients(raw: str) -> List[str]:
    return [addr.strip() for addr in raw.split(",") if addr.strip()]


def _parse_port(raw: str) -> Optional[int]:
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"SQL_EXPORT_SMTP_PORT must be an integer, got {raw!r}")


def load_settings(overrides: Optional[Mapping[str, str]] = None) -> ExportSettings:
    """Build and validate ExportSettings from the environment.

    `overrides` uses the same keys as the environment and wins over it
    (the CLI passes flag values through here).
    """
    env: Dict[str, str] = dict(os.environ)
    if overrides:
        env.update({k: v for k, v in overrides.items() if v is not None})

    settings = ExportSettings(
        identity=env.get("SQL_EXPORT_IDENTITY", ""),
        source_dir=env.get("SQL_EXPORT_SOURCE_DIR", ""),
        output_dir=env.get("SQL_EXPORT_OUTPUT_DIR", ""),
        work_dir=env.get("SQL_EXPORT_WORK_DIR", ""),
        recipients=_split_recipients(env.get("SQL_EXPORT_MAIL_TO", "")),
        query_tool=env.get("SQL_EXPORT_QUERY_TOOL", "psql"),
        script_extension=env.get("SQL_EXPORT_SCRIPT_EXTENSION", ".sql"),
        field_delimiter=env.get("SQL_EXPORT_FIELD_DELIMITER", ","),
        timestamp_format=env.get("SQL_EXPORT_TIMESTAMP_FORMAT", DEFAULT_TIMESTAMP_FORMAT),
        archive_pattern=env.get("SQL_EXPORT_ARCHIVE_PATTERN", DEFAULT_ARCHIVE_PATTERN),
        from_email=env.get("SQL_EXPORT_MAIL_FROM", DEFAULT_FROM_EMAIL),
        subject=env.get("SQL_EXPORT_MAIL_SUBJECT", DEFAULT_SUBJECT),
        body=env.get("SQL_EXPORT_MAIL_BODY", DEFAULT_BODY),
        include_summary=env.get("SQL_EXPORT_MAIL_SUMMARY", "true").lower() == "true",
        mail_transport=env.get("SQL_EXPORT_MAIL_TRANSPORT", "smtp").lower(),
        smtp_host=env.get("SQL_EXPORT_SMTP_HOST", ""),
        smtp_port=_parse_port(env.get("SQL_EXPORT_SMTP_PORT", "")),
        smtp_security=env.get("SQL_EXPORT_SMTP_SECURITY", "none").lower(),
        smtp_user=env.get("SQL_EXPORT_SMTP_USER", ""),
        # NOTE: passwords and API keys are expected to come from environment
        # variables or config/local_secrets.json (never hardcoded in the repo).
        smtp_password=env.get("SQL_EXPORT_SMTP_PASSWORD") or get_secret("SQL_EXPORT_SMTP_PASSWORD"),
        resend_api_key=env.get("RESEND_API_KEY") or get_secret("RESEND_API_KEY"),
    )
    return settings.validate()
