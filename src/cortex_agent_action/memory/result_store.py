"""Persist agent responses as timestamped JSON files and prune stale ones."""

import json
import logging
import stat
import time
from datetime import datetime
from pathlib import Path
from typing import (
    Any,
    List,
)

logger = logging.getLogger(__name__)

MAX_PERSIST_FILE_AGE = 24 * 60 * 60  # seconds
RESULT_FILE_PREFIX = "agent-result-"


def build_result_filename(moment: datetime) -> str:
    """
    Return ``agent-result-YYYYMMDD-HHMMSS-<epoch millis>.json`` for *moment*.

    The date/time part uses local wall-clock time; the millisecond suffix keeps names unique across
    runs within the same second.
    """
    epoch_ms = int(moment.timestamp() * 1000)
    return f"{RESULT_FILE_PREFIX}{moment:%Y%m%d-%H%M%S}-{epoch_ms}.json"


def cleanup_persisted_files(
    directory: Path, max_age_seconds: float = MAX_PERSIST_FILE_AGE, now: float | None = None
) -> List[Path]:
    """
    Delete regular files in *directory* last modified more than *max_age_seconds* ago.

    Best effort: sub-directories are left alone and an entry that cannot be inspected or removed
    (e.g. deleted concurrently) is skipped.  Returns the removed paths.
    """
    if not directory.is_dir():
        return []

    now = time.time() if now is None else now
    removed: List[Path] = []
    for entry in directory.iterdir():
        try:
            info = entry.stat()
            if not stat.S_ISREG(info.st_mode):
                continue
            if now - info.st_mtime > max_age_seconds:
                entry.unlink()
                removed.append(entry)
        except OSError as exc:
            logger.debug("Skipping '%s' during cleanup: %s", entry, exc)
            continue

    if removed:
        logger.info("Removed %d stale result file(s) from %s", len(removed), directory)
    return removed


def persist_response(payload: Any, target_dir: str | Path) -> Path:
    """
    Write *payload* as pretty-printed JSON into a new file under *target_dir*.

    The directory is created when missing and swept of files older than
    :data:`MAX_PERSIST_FILE_AGE` before writing.  Filesystem errors other than those hit by the
    sweep propagate to the caller.

    Returns
    -------
    Path
        Absolute path of the written file.
    """
    directory = Path(target_dir).resolve()
    directory.mkdir(parents=True, exist_ok=True)
    cleanup_persisted_files(directory, MAX_PERSIST_FILE_AGE)

    file_path = directory / build_result_filename(datetime.now())
    body = json.dumps({} if payload is None else payload, indent=2, ensure_ascii=False)
    # lone surrogates (e.g. a stream cut mid-emoji) become JSON \uXXXX escapes
    file_path.write_text(body, encoding="utf-8", errors="backslashreplace")
    logger.debug("Wrote %d bytes to %s", len(body), file_path)
    return file_path
