"""Bulk import of votes from a CSV file.

Each row has three fields: ``userId,action,target``. Rows go through the
same encoder as live writes and are appended in file order. What happens
to a malformed row is the caller's choice (:class:`ImportPolicy`).
"""

import csv
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable

from .codec import Vote, encode, parse_decimal
from .errors import InvalidEvent, MalformedImportRow
from .log import UserLog

logger = logging.getLogger(__name__)


class ImportPolicy(Enum):
    """What to do with a row that fails parsing or validation."""

    ABORT = "abort"  # Stop at the first bad row
    SKIP = "skip"  # Log it and continue


@dataclass
class ImportStats:
    lines: int = 0
    imported: int = 0
    skipped: int = 0


def parse_row(row: list[str], line_no: int) -> tuple[str, Vote]:
    """Parse and validate one CSV row.

    Raises:
        MalformedImportRow: On a wrong field count, non-integer action or
            target, or a value outside the encodable range.
    """
    if len(row) != 3:
        raise MalformedImportRow(line_no, row, f"expected 3 fields, got {len(row)}")

    user_id, raw_action, raw_target = (value.strip() for value in row)
    if not user_id:
        raise MalformedImportRow(line_no, row, "empty user id")

    try:
        action = parse_decimal(raw_action)
        target = parse_decimal(raw_target)
    except ValueError:
        raise MalformedImportRow(line_no, row, "action and target must be integers") from None

    try:
        encode(action, target)
    except InvalidEvent as e:
        raise MalformedImportRow(line_no, row, str(e)) from e

    return user_id, Vote(action=action, target=target)


def import_rows(
    log: UserLog,
    rows: Iterable[list[str]],
    policy: ImportPolicy = ImportPolicy.ABORT,
    progress_every: int = 100000,
) -> ImportStats:
    """Append every row to its user's log, in order.

    Rows already appended stay in the log if a later row aborts the
    import.

    Raises:
        MalformedImportRow: Under ``ImportPolicy.ABORT``, for the first bad row.
        StoreUnavailable: If an append fails. Never retried.
    """
    stats = ImportStats()

    for line_no, row in enumerate(rows, start=1):
        stats.lines = line_no
        if not row:
            continue

        try:
            user_id, vote = parse_row(row, line_no)
        except MalformedImportRow as e:
            if policy is ImportPolicy.ABORT:
                logger.error(f"Aborting import: {e}")
                raise
            logger.warning(f"Skipping {e}")
            stats.skipped += 1
            continue

        log.append(user_id, vote)
        stats.imported += 1

        if line_no % progress_every == 0:
            logger.info(f"Import progress: {line_no} lines, {stats.imported} votes")

    logger.info(
        f"Import finished: {stats.lines} lines, "
        f"imported={stats.imported}, skipped={stats.skipped}"
    )
    return stats


def import_csv(
    log: UserLog,
    path: str | Path,
    policy: ImportPolicy = ImportPolicy.ABORT,
    progress_every: int = 100000,
) -> ImportStats:
    """Import a CSV file of ``userId,action,target`` rows."""
    path = Path(path).expanduser()
    logger.info(f"Importing votes from {path} (on error: {policy.value})")

    with open(path, newline="") as f:
        return import_rows(log, csv.reader(f), policy, progress_every)
