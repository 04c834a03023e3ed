"""Plain-text run summary appended to the notification email."""
import os
from typing import List, Optional

import pandas as pd

from modules.run_context import RunContext

CHUNK_ROWS = 100_000


def count_rows(path: str, delimiter: str = ",") -> Optional[int]:
    """Number of data rows in a result CSV (header excluded).

    Returns 0 for an empty file and None when the file is missing or
    cannot be parsed as delimited text.
    """
    if not os.path.exists(path):
        return None
    try:
        # Chunked so a large export is never held in memory at once
        with pd.read_csv(path, sep=delimiter, chunksize=CHUNK_ROWS) as reader:
            return sum(len(chunk) for chunk in reader)
    except pd.errors.EmptyDataError:
        return 0
    except (pd.errors.ParserError, UnicodeDecodeError, OSError, MemoryError):
        return None


def format_summary_text(ctx: RunContext, delimiter: str = ",") -> str:
    lines: List[str] = []
    lines.append("Run summary")
    lines.append("-----------")
    lines.append(f"Run timestamp: {ctx.timestamp}")
    lines.append(f"Succeeded: {len(ctx.succeeded)}   Failed: {len(ctx.failed)}")
    lines.append("")

    header = f"{'Result file':<40} {'Status':<8} {'Exit':>5} {'Rows':>8}"
    lines.append(header)
    lines.append("-" * len(header))

    for path in ctx.succeeded:
        rows = count_rows(path, delimiter)
        rows_str = str(rows) if rows is not None else "-"
        lines.append(f"{os.path.basename(path):<40} {'OK':<8} {0:>5} {rows_str:>8}")

    for script, code in ctx.failed:
        lines.append(f"{os.path.basename(script):<40} {'FAILED':<8} {code:>5} {'-':>8}")

    return "\n".join(lines)
